"""더미 OCR 구현 (테스트용)

고정된 샘플 차트 텍스트를 돌려줍니다. document_from_text()는 임의 텍스트로
고정 줄 높이/글자 폭의 합성 공간 문서를 만들어 공간 추출 테스트에 씁니다.
"""
from __future__ import annotations

import re
from typing import List, Optional

from PIL import Image

from chart_ocr.models.envelopes import (
    BoundingBox,
    OCRResultEnvelope,
    RecognizedDocument,
    RecognizedLine,
    RecognizedWord,
)
from .base import BaseOCRService

SAMPLE_CHART_TEXT = """
GENERAL HOSPITAL - MEDICAL CHART

Patient Name: John Smith
MRN: A12345678
DOB: 03/15/1962

Diagnosis: Type 2 Diabetes Mellitus

MEDICATIONS:
1. Metformin 500mg twice daily
2. Lisinopril 10mg daily
- Aspirin 81mg daily

LAB RESULTS:
HbA1c 7.2%
Fasting glucose 142 mg/dL

Plan: Follow up in 3 months
""".strip()

_WORD_RE = re.compile(r"\S+")


def document_from_text(
    text: str,
    line_height: float = 30,
    char_width: float = 10,
    margin: float = 20,
    confidence: float = 95.0,
) -> RecognizedDocument:
    """텍스트 → 합성 공간 문서

    각 줄은 y = margin + 줄번호 * line_height에 놓이고, 단어 x 좌표는
    글자 오프셋 * char_width로 계산합니다. 빈 줄은 라인을 만들지 않지만 y는 증가합니다.
    """
    lines: List[RecognizedLine] = []
    height = line_height * 0.8
    for row, raw in enumerate((text or "").split("\n")):
        y0 = margin + row * line_height
        words = [
            RecognizedWord(
                text=m.group(0),
                bbox=BoundingBox(
                    x0=margin + m.start() * char_width,
                    y0=y0,
                    x1=margin + m.end() * char_width,
                    y1=y0 + height,
                ),
                confidence=confidence,
            )
            for m in _WORD_RE.finditer(raw)
        ]
        if not words:
            continue
        bbox = words[0].bbox.union(words[-1].bbox)
        lines.append(
            RecognizedLine(
                text=" ".join(w.text for w in words),
                bbox=bbox,
                confidence=confidence,
                words=words,
            )
        )
    return RecognizedDocument(
        text=text or "",
        confidence=confidence if lines else 0.0,
        lines=lines,
        words=[w for line in lines for w in line.words],
    )


class DummyOCR(BaseOCRService):
    """테스트용 더미 OCR 서비스

    Args:
        text: 돌려줄 텍스트 (기본값: 샘플 차트)
        spatial: False이면 라인/단어 없이 텍스트만 반환
    """

    engine_name = "DummyOCR"

    def __init__(self, text: Optional[str] = None, spatial: bool = True):
        self.text = SAMPLE_CHART_TEXT if text is None else text
        self.spatial = spatial
        self.calls = 0

    def _build(self) -> RecognizedDocument:
        self.calls += 1
        if self.spatial:
            return document_from_text(self.text)
        return RecognizedDocument(text=self.text, confidence=100.0)

    def recognize(
        self,
        image_bytes: bytes,
        lang: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> OCRResultEnvelope:
        """이미지 내용과 무관하게 고정 문서 반환"""
        return self._envelope(self._build(), source="bytes", lang=lang)

    def recognize_image(
        self,
        image: Image.Image,
        lang: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> OCRResultEnvelope:
        return self._envelope(self._build(), source="nparray", lang=lang)


__all__ = ["SAMPLE_CHART_TEXT", "document_from_text", "DummyOCR"]
