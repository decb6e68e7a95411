"""Tesseract 기반 OCR 서비스

pytesseract.image_to_data(Output.DICT) 결과를 RecognizedDocument로 변환합니다.

변환 규칙:
- conf >= 0 이고 텍스트가 비어있지 않은 항목만 단어로 채택
- (block, par, line) 키로 라인 그룹화, 라인 신뢰도 = 단어 신뢰도 평균
- 전체 텍스트 = 라인들을 줄바꿈으로 연결, 블록이 바뀌면 빈 줄 삽입
- 문서 신뢰도 = 전체 단어 신뢰도 평균

사용 예시:
    from chart_ocr.services.ocr.tesseract_ocr import TesseractOCR

    ocr = TesseractOCR(lang="eng")
    envelope = ocr.recognize(png_bytes, timeout=30)
    print(envelope.data.text)
"""
from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pytesseract
from PIL import Image
from pytesseract import Output, TesseractError, TesseractNotFoundError

from chart_ocr.models.envelopes import (
    BoundingBox,
    OCRResultEnvelope,
    RecognizedDocument,
    RecognizedLine,
    RecognizedWord,
)
from .base import BaseOCRService, RecognitionError

logger = logging.getLogger(__name__)

LineKey = Tuple[int, int, int]


class TesseractOCR(BaseOCRService):
    """Tesseract 기반 OCR 서비스

    Attributes:
        lang: 인식 언어 (기본값: 'eng')
        config: tesseract 추가 옵션 (기본값: '--oem 3 --psm 6')
    """

    engine_name = "Tesseract"

    def __init__(
        self,
        lang: str = "eng",
        config: str = "--oem 3 --psm 6",
        tesseract_cmd: Optional[str] = None,
    ):
        self.lang = lang
        self.default_lang = lang
        self.config = config
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        logger.info(f"Tesseract 초기화: lang={lang}, config='{config}'")

    def recognize_image(
        self,
        image: Image.Image,
        lang: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> OCRResultEnvelope:
        """이미지에서 단어/라인 bbox와 신뢰도 인식"""
        lang = lang or self.lang
        pil = image if image.mode in ("L", "RGB") else image.convert("RGB")
        try:
            data = pytesseract.image_to_data(
                pil,
                lang=lang,
                config=self.config,
                output_type=Output.DICT,
                timeout=timeout or 0,
            )
        except TesseractNotFoundError as e:
            raise RecognitionError(f"tesseract 실행 파일을 찾을 수 없습니다: {e}") from e
        except TesseractError as e:
            raise RecognitionError(f"tesseract 실행 실패: {e}") from e
        except RuntimeError as e:
            # pytesseract는 타임아웃을 RuntimeError로 알림
            raise RecognitionError(f"tesseract 타임아웃/실패: {e}") from e

        document = self.to_document(data)
        logger.info(
            f"Tesseract 인식 완료: {len(document.words)}개 단어, "
            f"{len(document.lines)}개 라인, conf={document.confidence:.1f}"
        )
        return self._envelope(document, source="nparray", lang=lang)

    @staticmethod
    def to_document(data: Dict[str, List[Any]]) -> RecognizedDocument:
        """image_to_data DICT → RecognizedDocument"""
        n = len(data.get("text", []))
        groups: "OrderedDict[LineKey, List[RecognizedWord]]" = OrderedDict()

        for i in range(n):
            txt = (data["text"][i] or "").strip()
            if not txt:
                continue
            try:
                conf = float(data["conf"][i])
            except (TypeError, ValueError):
                conf = -1
            if conf < 0:
                continue
            left, top = float(data["left"][i]), float(data["top"][i])
            word = RecognizedWord(
                text=txt,
                bbox=BoundingBox(
                    x0=left,
                    y0=top,
                    x1=left + float(data["width"][i]),
                    y1=top + float(data["height"][i]),
                ),
                confidence=min(conf, 100.0),
            )
            key = (int(data["block_num"][i]), int(data["par_num"][i]), int(data["line_num"][i]))
            groups.setdefault(key, []).append(word)

        lines: List[RecognizedLine] = []
        blocks: Dict[int, Dict[str, Any]] = OrderedDict()
        text_parts: List[str] = []
        prev_block: Optional[int] = None

        for (block, par, line_num), words in groups.items():
            words = sorted(words, key=lambda w: w.bbox.x0)
            bbox = words[0].bbox
            for w in words[1:]:
                bbox = bbox.union(w.bbox)
            line = RecognizedLine(
                text=" ".join(w.text for w in words),
                bbox=bbox,
                confidence=float(np.mean([w.confidence for w in words])),
                words=words,
            )
            lines.append(line)

            if prev_block is not None and block != prev_block:
                text_parts.append("")
            text_parts.append(line.text)
            prev_block = block

            info = blocks.setdefault(block, {"block_num": block, "lines": 0, "bbox": bbox.model_dump()})
            info["lines"] += 1
            info["bbox"] = BoundingBox(**info["bbox"]).union(bbox).model_dump()

        all_words = [w for line in lines for w in line.words]
        confidence = float(np.mean([w.confidence for w in all_words])) if all_words else 0.0
        return RecognizedDocument(
            text="\n".join(text_parts),
            confidence=confidence,
            lines=lines,
            words=all_words,
            blocks=list(blocks.values()),
        )


__all__ = ["TesseractOCR"]
