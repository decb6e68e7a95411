"""OCR 서비스 팩토리"""
from __future__ import annotations

from typing import Optional

from chart_ocr.settings import Settings, settings

from .base import BaseOCRService
from .dummy_ocr import DummyOCR
from .paddle_ocr import PaddleOCRService
from .tesseract_ocr import TesseractOCR


def get_ocr_service(
    provider: Optional[str] = None,
    config: Optional[Settings] = None,
) -> BaseOCRService:
    """설정에 따라 적절한 OCR 서비스 반환

    Args:
        provider: 제공자 이름 (None이면 설정의 ocr_provider)
        config: 설정 (None이면 전역 settings)

    Returns:
        BaseOCRService 인스턴스 (모두 OCRResultEnvelope 반환)
    """
    config = config or settings
    provider = provider or config.ocr_provider

    if provider == "tesseract":
        return TesseractOCR(
            lang=config.ocr_lang,
            config=config.tesseract_config,
            tesseract_cmd=config.tesseract_cmd,
        )
    elif provider == "paddle":
        return PaddleOCRService(lang=config.ocr_lang)
    elif provider == "dummy":
        return DummyOCR()
    else:
        raise ValueError(f"지원하지 않는 OCR 제공자: {provider}")
