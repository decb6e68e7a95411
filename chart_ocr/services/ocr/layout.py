"""라인 박스 → 단어/라인 레이아웃 복원

PaddleOCR처럼 문장/구 단위 박스만 돌려주는 엔진의 결과를
RecognizedWord / RecognizedLine 구조로 바꿉니다.

- poly_to_bbox: 4점 폴리곤 또는 [x0, y0, x1, y1] → BoundingBox
- split_words: 박스 텍스트를 공백 단위로 쪼개고 글자 오프셋 비율로 x를 보간
- group_into_lines: y 중심 기준 위→아래 스윕으로 같은 라인 묶기
    - tau = median(height) * alpha
    - 고정 밴드 [seed_center - tau, seed_center + tau] 안이면 같은 라인
"""
from __future__ import annotations

import re
from typing import Iterable, List, Sequence

import numpy as np

from chart_ocr.models.envelopes import BoundingBox, RecognizedLine, RecognizedWord

DEFAULT_ALPHA = 0.7
DEFAULT_LINE_HEIGHT = 16

_WORD_RE = re.compile(r"\S+")


def poly_to_bbox(poly) -> BoundingBox:
    """폴리곤/사각형 좌표 → 축 정렬 bbox"""
    arr = np.asarray(poly, dtype=float)
    if arr.ndim == 1 and arr.size == 4:
        x0, y0, x1, y1 = arr.tolist()
        return BoundingBox(x0=min(x0, x1), y0=min(y0, y1), x1=max(x0, x1), y1=max(y0, y1))
    pts = arr.reshape(-1, 2)
    return BoundingBox(
        x0=float(pts[:, 0].min()),
        y0=float(pts[:, 1].min()),
        x1=float(pts[:, 0].max()),
        y1=float(pts[:, 1].max()),
    )


def split_words(text: str, bbox: BoundingBox, confidence: float) -> List[RecognizedWord]:
    """박스 텍스트를 단어로 분리하고 글자 위치 비율로 x 구간을 나눕니다."""
    text = text or ""
    n_chars = len(text)
    words: List[RecognizedWord] = []
    if n_chars == 0:
        return words
    char_w = bbox.width / n_chars
    for m in _WORD_RE.finditer(text):
        words.append(
            RecognizedWord(
                text=m.group(0),
                bbox=BoundingBox(
                    x0=bbox.x0 + m.start() * char_w,
                    y0=bbox.y0,
                    x1=bbox.x0 + m.end() * char_w,
                    y1=bbox.y1,
                ),
                confidence=confidence,
            )
        )
    return words


def _median_height(words: Sequence[RecognizedWord]) -> float:
    heights = [w.bbox.height for w in words if w.bbox.height > 0]
    if not heights:
        return DEFAULT_LINE_HEIGHT
    return float(np.median(heights))


def group_into_lines(
    words: Iterable[RecognizedWord],
    alpha: float = DEFAULT_ALPHA,
) -> List[RecognizedLine]:
    """y 밴드 스윕으로 단어를 라인으로 묶습니다.

    라인 순서는 위→아래, 라인 내 단어는 x0 오름차순(동점이면 입력 순서).
    """
    items = list(words)
    if not items:
        return []
    tau = max(1.0, round(_median_height(items) * alpha))

    def _center(w: RecognizedWord) -> float:
        return (w.bbox.y0 + w.bbox.y1) / 2

    order = sorted(range(len(items)), key=lambda i: (_center(items[i]), items[i].bbox.y0))

    groups: List[List[int]] = []
    band_top = band_bottom = None
    for idx in order:
        c = _center(items[idx])
        if groups and band_top <= c <= band_bottom:
            groups[-1].append(idx)
            continue
        groups.append([idx])
        band_top, band_bottom = c - tau, c + tau

    lines: List[RecognizedLine] = []
    for group in groups:
        members = [items[i] for i in sorted(group, key=lambda i: (items[i].bbox.x0, i))]
        bbox = members[0].bbox
        for w in members[1:]:
            bbox = bbox.union(w.bbox)
        lines.append(
            RecognizedLine(
                text=" ".join(w.text for w in members),
                bbox=bbox,
                confidence=float(np.mean([w.confidence for w in members])),
                words=members,
            )
        )
    return lines


__all__ = [
    "DEFAULT_ALPHA",
    "poly_to_bbox",
    "split_words",
    "group_into_lines",
]
