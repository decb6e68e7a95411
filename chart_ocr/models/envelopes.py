"""파이프라인 Envelope 모델

파이프라인 각 단계(전처리/OCR/추출)별 데이터와 메타데이터를
일관되고 타입 안전하게 관리하는 Pydantic 모델 정의.

OCR 단계 데이터는 인식기 종류와 무관하게 RecognizedDocument 하나로 통일합니다.
(전체 텍스트 + 라인/단어 단위 bbox + 신뢰도)
"""
from __future__ import annotations

from typing import Any, Dict, Generic, List, Literal, Optional, TypeVar

from typing_extensions import TypeAlias

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# 기본 타입 정의
# =============================================================================

Stage: TypeAlias = Literal['preprocess', 'ocr', 'extract']
"""파이프라인 처리 단계"""

TData = TypeVar('TData')
TMeta = TypeVar('TMeta')


class Envelope(BaseModel, Generic[TData, TMeta]):
    """파이프라인 단계별 데이터와 메타데이터를 감싸는 공통 Envelope 모델"""
    stage: Stage
    data: TData
    meta: TMeta
    version: str = '1.0'


# =============================================================================
# OCR 단계 모델
# =============================================================================

class BoundingBox(BaseModel):
    """원본 이미지 픽셀 좌표계의 축 정렬 사각형 (x0,y0)-(x1,y1)"""
    model_config = ConfigDict(frozen=True)

    x0: float
    y0: float
    x1: float
    y1: float

    @model_validator(mode='after')
    def _check_order(self) -> 'BoundingBox':
        if self.x1 < self.x0 or self.y1 < self.y0:
            raise ValueError(
                f"잘못된 bbox: ({self.x0},{self.y0})-({self.x1},{self.y1})"
            )
        return self

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0

    def union(self, other: 'BoundingBox') -> 'BoundingBox':
        """두 bbox를 모두 포함하는 최소 bbox"""
        return BoundingBox(
            x0=min(self.x0, other.x0),
            y0=min(self.y0, other.y0),
            x1=max(self.x1, other.x1),
            y1=max(self.y1, other.y1),
        )


class RecognizedWord(BaseModel):
    """인식된 단어 하나"""
    model_config = ConfigDict(frozen=True)

    text: str
    bbox: BoundingBox
    confidence: float = Field(ge=0, le=100, description="인식 신뢰도 (0~100)")


class RecognizedLine(BaseModel):
    """인식된 라인 (단어는 좌→우 순서)"""
    model_config = ConfigDict(frozen=True)

    text: str
    bbox: BoundingBox
    confidence: float = Field(ge=0, le=100, description="라인 신뢰도 (0~100)")
    words: List[RecognizedWord] = Field(default_factory=list)


class RecognizedDocument(BaseModel):
    """이미지 1장에 대한 인식 결과 (추출 호출 동안 읽기 전용)"""
    model_config = ConfigDict(frozen=True)

    text: str = Field(default="", description="전체 텍스트")
    confidence: float = Field(default=0.0, ge=0, le=100, description="문서 전체 신뢰도")
    lines: List[RecognizedLine] = Field(default_factory=list, description="라인 리스트 (읽기 순서)")
    words: List[RecognizedWord] = Field(default_factory=list, description="평탄화된 단어 리스트")
    blocks: List[Dict[str, Any]] = Field(default_factory=list, description="엔진 블록 정보 (미사용)")

    @property
    def has_spatial_data(self) -> bool:
        return bool(self.lines or self.words)


class OCRMeta(BaseModel):
    """OCR 단계 결과 메타데이터"""
    words: Optional[int] = Field(default=None, description="인식된 단어 수")
    lines: Optional[int] = Field(default=None, description="인식된 라인 수")
    source: Optional[Literal['bytes', 'nparray', 'path', 'text']] = Field(default=None, description="입력 소스 타입")
    lang: Optional[str] = Field(default=None, description="OCR 인식 언어")
    engine: Optional[str] = Field(default=None, description="사용된 OCR 엔진명")


# =============================================================================
# Extraction 단계 모델
# =============================================================================

FieldSource: TypeAlias = Literal['spatial', 'text', 'unknown']


class ExtractionMeta(BaseModel):
    """추출 단계 결과 메타데이터"""
    engine: Optional[str] = Field(default=None, description="사용된 OCR 엔진명")
    preprocessed: bool = Field(default=False, description="전처리 이미지로 인식했는지 여부")
    recognition_attempts: int = Field(default=0, description="인식기 호출 횟수")
    ocr_confidence: Optional[float] = Field(default=None, description="문서 전체 인식 신뢰도")
    field_sources: Dict[str, FieldSource] = Field(default_factory=dict, description="필드별 값 출처")
    medications: int = Field(default=0, description="추출된 약물 수")
    lab_results: int = Field(default=0, description="추출된 검사 항목 수")


# =============================================================================
# 타입 별칭 (Type Aliases)
# =============================================================================

OCRResultEnvelope = Envelope[RecognizedDocument, OCRMeta]


__all__ = [
    'Stage',
    'Envelope',
    'BoundingBox',
    'RecognizedWord',
    'RecognizedLine',
    'RecognizedDocument',
    'OCRMeta',
    'OCRResultEnvelope',
    'FieldSource',
    'ExtractionMeta',
]
