"""OCR 서비스 패키지

다양한 OCR 엔진을 통일된 인터페이스로 제공합니다.
모든 서비스가 OCRResultEnvelope(RecognizedDocument)를 반환합니다.

주요 모듈:
- base: OCR 서비스 기본 인터페이스 (BaseOCRService, RecognitionError)
- tesseract_ocr: Tesseract 기반 구현체 (TesseractOCR)
- paddle_ocr: PaddleOCR 기반 구현체 (PaddleOCRService)
- layout: 라인 박스 → 단어/라인 복원
- dummy_ocr: 테스트용 더미 구현체 (DummyOCR)
- factory: OCR 서비스 팩토리 함수
"""

from .base import BaseOCRService, RecognitionError
from .dummy_ocr import DummyOCR, document_from_text
from .paddle_ocr import PaddleOCRService
from .tesseract_ocr import TesseractOCR
from .factory import get_ocr_service

__all__ = [
    # 기본 인터페이스
    "BaseOCRService",
    "RecognitionError",
    # 서비스
    "TesseractOCR",
    "PaddleOCRService",
    "DummyOCR",
    "document_from_text",
    # 팩토리
    "get_ocr_service",
]
