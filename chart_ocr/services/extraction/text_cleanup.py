"""OCR 텍스트 정리 (흔한 오인식 보정)"""
from __future__ import annotations

import re

from chart_ocr.models.envelopes import RecognizedDocument

_O_ZERO_RE = re.compile(r"[O0]")


def clean_ocr_text(text: str) -> str:
    """OCR 전체 텍스트의 흔한 오인식을 보정합니다.

    - '|' → 'I'
    - 'O'/'0': 원문 기준 앞뒤 문자 중 숫자가 있으면 '0', 아니면 'O'

    사용 예시:
        >>> clean_ocr_text("DOB: 1O/2O/198O")
        'DOB: 10/20/1980'
        >>> clean_ocr_text("|CD-10 C0DE")
        'ICD-10 CODE'
    """
    if not text:
        return ""
    piped = text.replace("|", "I")

    def _fix(m: re.Match) -> str:
        i = m.start()
        before = text[i - 1] if i > 0 else ""
        after = text[i + 1] if i + 1 < len(text) else ""
        if before.isdigit() or after.isdigit():
            return "0"
        return "O"

    return _O_ZERO_RE.sub(_fix, piped)


def clean_document(document: RecognizedDocument) -> RecognizedDocument:
    """문서 전체 텍스트와 라인/단어 텍스트에 같은 보정을 적용한 사본

    단어는 공백으로 구분되므로 단어 단위 보정은 라인 단위 보정과 결과가 같습니다.
    bbox와 신뢰도는 그대로 둡니다.
    """
    def _word(w):
        return w.model_copy(update={"text": clean_ocr_text(w.text)})

    lines = [
        line.model_copy(update={
            "text": clean_ocr_text(line.text),
            "words": [_word(w) for w in line.words],
        })
        for line in document.lines
    ]
    return document.model_copy(update={
        "text": clean_ocr_text(document.text),
        "lines": lines,
        "words": [_word(w) for w in document.words],
    })


__all__ = ["clean_ocr_text", "clean_document"]
