"""OCR 서비스 기본 인터페이스

모든 OCR 서비스(TesseractOCR, PaddleOCRService, DummyOCR)가 상속하는 기본 인터페이스.
통일된 OCRResultEnvelope(RecognizedDocument + OCRMeta) 반환 타입 사용.

다양한 입력 타입 지원:
- bytes (recognize) - 파이프라인 진입점
- PIL Image (recognize_image) - 핵심 추상 메서드
- 파일 경로 / numpy array / bytes / PIL Image (run_ocr) - 통합 메서드

실패는 None이 아니라 RecognitionError로 알립니다.
"""
from __future__ import annotations

import io
import logging
from abc import ABC, abstractmethod
from typing import Literal, Optional, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from chart_ocr.models.envelopes import OCRMeta, OCRResultEnvelope, RecognizedDocument

logger = logging.getLogger(__name__)


class RecognitionError(RuntimeError):
    """인식기 미설치 / 실행 실패 / 타임아웃"""


class BaseOCRService(ABC):
    """OCR 서비스 기본 추상 클래스

    필수 구현:
        - recognize_image(Image.Image, lang, timeout)

    기본 구현 제공 (오버라이드 가능):
        - recognize(bytes, lang, timeout): 바이트 디코딩 후 recognize_image 호출
        - run_ocr(Union[...]): 입력 타입 자동 감지 통합 메서드
    """

    engine_name: str = "BaseOCR"
    default_lang: str = "eng"

    @abstractmethod
    def recognize_image(
        self,
        image: Image.Image,
        lang: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> OCRResultEnvelope:
        """이미지에서 텍스트 + 레이아웃 인식 (핵심 추상 메서드)

        Args:
            image: PIL Image 객체
            lang: 인식 언어 (None이면 서비스 기본값)
            timeout: 초 단위 타임아웃 (None이면 무제한)

        Returns:
            OCRResultEnvelope 객체

        Raises:
            RecognitionError: 인식 실패
        """

    def recognize(
        self,
        image_bytes: bytes,
        lang: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> OCRResultEnvelope:
        """이미지 바이트 인식

        Raises:
            RecognitionError: 디코딩 또는 인식 실패
        """
        try:
            image = Image.open(io.BytesIO(image_bytes))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise RecognitionError(f"인식용 이미지 디코딩 실패: {e}") from e
        envelope = self.recognize_image(image, lang=lang, timeout=timeout)
        return envelope.model_copy(update={"meta": envelope.meta.model_copy(update={"source": "bytes"})})

    def run_ocr(
        self,
        image: Union[str, np.ndarray, Image.Image, bytes],
        lang: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> OCRResultEnvelope:
        """통합 OCR 실행 메서드

        입력 타입을 자동 감지하여 적절한 메서드 호출.

        Args:
            image: 이미지 (파일 경로, numpy array, PIL Image, bytes)

        Returns:
            OCRResultEnvelope
        """
        if isinstance(image, str):
            try:
                with open(image, "rb") as f:
                    data = f.read()
            except OSError as e:
                raise RecognitionError(f"이미지 파일 읽기 실패: {e}") from e
            envelope = self.recognize(data, lang=lang, timeout=timeout)
            return envelope.model_copy(update={"meta": envelope.meta.model_copy(update={"source": "path"})})
        elif isinstance(image, bytes):
            return self.recognize(image, lang=lang, timeout=timeout)
        elif isinstance(image, Image.Image):
            return self.recognize_image(image, lang=lang, timeout=timeout)
        elif isinstance(image, np.ndarray):
            return self.recognize_image(Image.fromarray(image), lang=lang, timeout=timeout)
        else:
            raise TypeError(f"지원하지 않는 이미지 타입: {type(image)}")

    def _envelope(
        self,
        document: RecognizedDocument,
        source: Literal["bytes", "nparray", "path", "text"] = "nparray",
        lang: Optional[str] = None,
    ) -> OCRResultEnvelope:
        """RecognizedDocument → OCRResultEnvelope"""
        return OCRResultEnvelope(
            stage="ocr",
            data=document,
            meta=OCRMeta(
                words=len(document.words),
                lines=len(document.lines),
                source=source,
                lang=lang or self.default_lang,
                engine=self.engine_name,
            ),
        )


__all__ = [
    "RecognitionError",
    "BaseOCRService",
]
