"""PaddleOCR 기반 OCR 서비스

PaddleOCR은 문장/구 단위 박스(dt_polys)와 텍스트(rec_texts), 점수(rec_scores, 0~1)를
반환합니다. 이를 layout 모듈로 단어 분리 + y 밴드 라인 그룹화하여
RecognizedDocument로 변환합니다. 점수는 0~100으로 스케일합니다.

paddleocr 패키지는 선택 의존성입니다 (pip install chart-ocr[paddle]).

사용 예시:
    from chart_ocr.services.ocr.paddle_ocr import PaddleOCRService

    ocr = PaddleOCRService(lang="en")
    envelope = ocr.recognize(png_bytes)
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Dict, List, Optional

import cv2
import numpy as np
from PIL import Image

from chart_ocr.models.envelopes import OCRResultEnvelope, RecognizedDocument, RecognizedWord
from .base import BaseOCRService, RecognitionError
from .layout import DEFAULT_ALPHA, group_into_lines, poly_to_bbox, split_words

logger = logging.getLogger(__name__)

# tesseract 언어 태그 → PaddleOCR 언어 코드
_LANG_MAP = {"eng": "en", "kor": "korean", "chi_sim": "ch"}


class PaddleOCRService(BaseOCRService):
    """PaddleOCR 기반 OCR 서비스

    엔진은 첫 호출 시 생성(lazy initialization)하며, 인스턴스 락으로
    predict 호출을 직렬화합니다.

    Attributes:
        lang: 인식 언어 ('en', 'korean', 'ch' 등)
        alpha: 라인 병합 민감도 (tau = median(height) * alpha)
    """

    engine_name = "PaddleOCR"

    def __init__(self, lang: str = "en", alpha: float = DEFAULT_ALPHA, **kwargs):
        self.lang = _LANG_MAP.get(lang, lang)
        self.default_lang = self.lang
        self.alpha = alpha
        self._ocr_engine = None
        self._init_kwargs = kwargs.copy()
        self._ocr_lock = threading.RLock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="paddleocr")
        logger.info(f"PaddleOCR 초기화: lang={self.lang}")

    @property
    def ocr(self):
        """PaddleOCR 인스턴스 (lazy initialization)"""
        if self._ocr_engine is None:
            self._ocr_engine = self._create_ocr()
        return self._ocr_engine

    def _create_ocr(self):
        """PaddleOCR 인스턴스 생성"""
        try:
            from paddleocr import PaddleOCR
        except ImportError as e:
            raise RecognitionError(
                "paddleocr 패키지가 설치되지 않았습니다. "
                "pip install paddleocr 로 설치해주세요."
            ) from e

        paddle_kwargs = {
            "lang": self.lang,
            "use_doc_orientation_classify": False,
            "use_doc_unwarping": False,
            "use_textline_orientation": True,
        }
        paddle_kwargs.update(self._init_kwargs)
        logger.info(f"PaddleOCR 생성: {paddle_kwargs}")
        return PaddleOCR(**paddle_kwargs)

    def _reset_worker(self) -> None:
        """멈춘 predict를 버리고 워커/락/엔진을 새로 만듦 (다음 호출은 새 엔진 사용)"""
        logger.warning("PaddleOCR 타임아웃: 워커와 엔진을 재생성합니다")
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="paddleocr")
        self._ocr_lock = threading.RLock()
        self._ocr_engine = None

    def close(self) -> None:
        """워커 스레드 종료"""
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _predict_guarded(self, inp: np.ndarray, timeout: Optional[float]) -> Any:
        """락으로 보호된 predict 호출 (타임아웃은 워커 스레드 대기로 처리)"""
        engine = self.ocr

        def _run():
            with self._ocr_lock:
                return engine.predict(inp)

        future = self._executor.submit(_run)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError as e:
            self._reset_worker()
            raise RecognitionError(f"PaddleOCR 타임아웃 ({timeout}s)") from e
        except RecognitionError:
            raise
        except Exception as e:
            raise RecognitionError(f"PaddleOCR 실행 실패: {e}") from e

    @staticmethod
    def _field(result: Any, name: str) -> List[Any]:
        """OCRResult 객체/딕셔너리 모두에서 속성 추출"""
        if hasattr(result, name):
            value = getattr(result, name)
        elif isinstance(result, dict):
            value = result.get(name)
        else:
            value = None
        return list(value) if value is not None else []

    def to_document(self, raw_results: Any) -> RecognizedDocument:
        """PaddleOCR 3.x 결과(list[OCRResult] 또는 dict) → RecognizedDocument"""
        if raw_results is None:
            return RecognizedDocument()
        if isinstance(raw_results, list):
            if not raw_results:
                return RecognizedDocument()
            result: Any = raw_results[0]
        else:
            result = raw_results

        texts = self._field(result, "rec_texts")
        scores = self._field(result, "rec_scores")
        polys = self._field(result, "dt_polys")

        words: List[RecognizedWord] = []
        for i, text in enumerate(texts):
            if i >= len(polys):
                logger.warning(f"PaddleOCR 결과 박스 누락: index={i}")
                continue
            try:
                score = float(scores[i]) if i < len(scores) else 0.0
            except (TypeError, ValueError):
                score = 0.0
            confidence = min(max(score * 100.0, 0.0), 100.0)
            words.extend(split_words(str(text), poly_to_bbox(polys[i]), confidence))

        lines = group_into_lines(words, alpha=self.alpha)
        ordered_words = [w for line in lines for w in line.words]
        confidence = float(np.mean([w.confidence for w in ordered_words])) if ordered_words else 0.0
        blocks: List[Dict[str, Any]] = [
            {"text": str(t), "bbox": poly_to_bbox(p).model_dump()} for t, p in zip(texts, polys)
        ]

        logger.info(f"PaddleOCR 변환 완료: {len(texts)}개 박스 → {len(lines)}개 라인")
        return RecognizedDocument(
            text="\n".join(line.text for line in lines),
            confidence=confidence,
            lines=lines,
            words=ordered_words,
            blocks=blocks,
        )

    def _recognize_array(
        self,
        image_array: np.ndarray,
        lang: Optional[str],
        timeout: Optional[float],
        source: str,
    ) -> OCRResultEnvelope:
        if lang and _LANG_MAP.get(lang, lang) != self.lang:
            logger.warning(f"PaddleOCR는 생성 시 언어로만 동작합니다: 요청={lang}, 사용={self.lang}")
        raw = self._predict_guarded(image_array, timeout)
        return self._envelope(self.to_document(raw), source=source, lang=self.lang)

    def recognize(
        self,
        image_bytes: bytes,
        lang: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> OCRResultEnvelope:
        """바이트 데이터를 cv2로 직접 디코딩 후 인식"""
        nparr = np.frombuffer(image_bytes, np.uint8)
        cv_image = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
        if cv_image is None:
            raise RecognitionError("이미지 디코딩 실패: 지원되지 않는 형식이거나 손상된 이미지")
        return self._recognize_array(cv_image, lang, timeout, source="bytes")

    def recognize_image(
        self,
        image: Image.Image,
        lang: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> OCRResultEnvelope:
        rgb = np.array(image.convert("RGB"))
        bgr = cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR)
        return self._recognize_array(bgr, lang, timeout, source="nparray")


__all__ = ["PaddleOCRService"]
