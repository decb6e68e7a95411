"""차트 필드 추출 패키지

OCR 결과(텍스트 + bbox)에서 환자 필드와 목록 섹션을 추출합니다.

주요 모듈:
- similarity: 문자열 정규화 / 편집 거리 / 유사도
- field_matcher: 라벨 퍼지 매칭
- field_specs: 필드/섹션 설정 테이블
- text_cleanup: OCR 오인식 보정
- text_extractor: 텍스트 기반 필드 추출 (후보 수집 + 랭킹)
- spatial_extractor: bbox 기반 필드 추출
- section_extractor: 약물/검사 결과 목록 추출
"""

from .similarity import normalize, edit_distance, similarity
from .field_matcher import is_label_match, label_match_score
from .field_specs import FIELD_SPECS, SECTION_SPECS
from .text_cleanup import clean_document, clean_ocr_text
from .text_extractor import extract_field
from .spatial_extractor import SpatialTolerances, extract_field_spatially
from .section_extractor import (
    extract_clinical_data,
    extract_lab_results,
    extract_medications,
    extract_section,
)

__all__ = [
    "normalize",
    "edit_distance",
    "similarity",
    "is_label_match",
    "label_match_score",
    "FIELD_SPECS",
    "SECTION_SPECS",
    "clean_ocr_text",
    "clean_document",
    "extract_field",
    "SpatialTolerances",
    "extract_field_spatially",
    "extract_section",
    "extract_clinical_data",
    "extract_medications",
    "extract_lab_results",
]
