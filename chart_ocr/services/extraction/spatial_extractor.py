"""
공간(bbox) 기반 필드 추출 모듈

평탄한 텍스트에서는 보이지 않는 문서 구조(같은 줄의 라벨/값, 위아래 배치,
가로 근접 배치)를 단어/라인 bbox와 신뢰도로 복원해 필드 값을 찾습니다.

전략 (순서대로 시도, 첫 성공 값 반환):
    1. same_line_pairs: 라벨을 포함한 라인에서 라벨 뒤 단어들을 값으로
    2. vertical_pairs: 라벨 라인 바로 아래 라인 (x 시작점 차이 < 50px)
    3. horizontal_proximity: 라벨 단어 오른쪽 300px 이내, y 차이 20px 이내 단어들

각 전략의 값은 필드 값 형식(FieldSpec.value_pattern)에 맞아야 채택되며,
맞지 않으면 해당 전략은 실패로 보고 다음 전략으로 넘어갑니다.

공간 데이터가 없는 문서는 즉시 None을 반환하며, 호출자는 텍스트 추출로 폴백합니다.
허용 오차(50/300/20px)는 일반적인 스캔 양식 기준 기본값입니다.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Union

from chart_ocr.models.envelopes import RecognizedDocument, RecognizedLine, RecognizedWord
from chart_ocr.models.record import ExtractionTrace, FieldSpec
from .field_matcher import best_label_match
from .similarity import normalize, similarity

logger = logging.getLogger(__name__)

DEFAULT_MIN_CONFIDENCE = 60.0
WORD_SIMILARITY_THRESHOLD = 0.7

_SEPARATORS = " \t:：;,.-–—|"
_PUNCT_ONLY_RE = re.compile(r"^[^\w]+$")


@dataclass(frozen=True)
class SpatialTolerances:
    """기하 허용 오차 (px)"""

    vertical_x: float = 50
    horizontal_gap: float = 300
    horizontal_y: float = 20


DEFAULT_TOLERANCES = SpatialTolerances()


def _strip_value(text: str) -> str:
    return text.strip().strip(_SEPARATORS).strip()


def _join_words(words: Iterable[RecognizedWord]) -> str:
    parts = [w.text.strip() for w in words]
    parts = [p for p in parts if p and not _PUNCT_ONLY_RE.match(p)]
    return _strip_value(" ".join(parts))


def _contains_on_word_boundary(haystack: str, needle: str) -> bool:
    return f" {needle} " in f" {haystack} "


# =============================================================================
# 전략
# =============================================================================

def same_line_pairs(
    lines: Sequence[RecognizedLine],
    variants: Sequence[str],
    min_confidence: float,
) -> Optional[str]:
    """전략 1: 같은 라인의 라벨 뒤 단어들을 값으로 사용"""
    norm_variants = [nv for nv in (normalize(v) for v in variants) if nv]
    # 긴 라벨 우선 ('name of patient' > 'name')
    norm_variants.sort(key=lambda nv: (len(nv.split()), len(nv)), reverse=True)

    for line in lines:
        if line.confidence < min_confidence or len(line.words) < 2:
            continue
        norm_line = normalize(line.text)
        if not norm_line:
            continue

        for nv in norm_variants:
            if not _contains_on_word_boundary(norm_line, nv):
                continue
            variant_tokens = nv.split()

            # 라벨 단어 위치 찾기 (토큰 포함 또는 유사도 > 0.7)
            label_idx = None
            for i, word in enumerate(line.words):
                nw = normalize(word.text)
                if not nw:
                    continue
                if nw in variant_tokens or nv in nw or similarity(nw, nv) > WORD_SIMILARITY_THRESHOLD:
                    label_idx = i
                    break
            if label_idx is None:
                continue

            # 여러 단어 라벨의 나머지 토큰 건너뛰기 ('patient' 'name:')
            end = label_idx + 1
            while end < len(line.words) and normalize(line.words[end].text) in variant_tokens:
                end += 1

            value_words = [w for w in line.words[end:] if w.confidence >= min_confidence]
            value = _join_words(value_words)
            if value:
                return value
    return None


def vertical_pairs(
    lines: Sequence[RecognizedLine],
    variants: Sequence[str],
    min_confidence: float,
    x_tolerance: float = DEFAULT_TOLERANCES.vertical_x,
) -> Optional[str]:
    """전략 2: 라벨 라인 바로 아래 라인을 값으로 사용"""
    for i in range(len(lines) - 1):
        label, below = lines[i], lines[i + 1]
        if label.confidence < min_confidence or below.confidence < min_confidence:
            continue
        if best_label_match(label.text, variants) is None:
            continue
        if abs(label.bbox.x0 - below.bbox.x0) >= x_tolerance:
            continue
        value = _strip_value(below.text)
        if value:
            return value
    return None


def horizontal_proximity(
    words: Sequence[RecognizedWord],
    variants: Sequence[str],
    min_confidence: float,
    max_gap: float = DEFAULT_TOLERANCES.horizontal_gap,
    y_tolerance: float = DEFAULT_TOLERANCES.horizontal_y,
) -> Optional[str]:
    """전략 3: 라벨 단어 오른쪽의 가까운 단어들을 값으로 사용"""
    for label in words:
        if label.confidence < min_confidence:
            continue
        if best_label_match(label.text, variants) is None:
            continue
        right = label.bbox.x1
        nearby = [
            w for w in words
            if w is not label
            and w.confidence >= min_confidence
            and right < w.bbox.x0 < right + max_gap
            and abs(w.bbox.y0 - label.bbox.y0) <= y_tolerance
        ]
        if not nearby:
            continue
        nearby.sort(key=lambda w: w.bbox.x0)
        value = _join_words(nearby)
        if value:
            return value
    return None


# =============================================================================
# 진입점
# =============================================================================

def extract_field_spatially(
    document: RecognizedDocument,
    spec_or_variants: Union[FieldSpec, Iterable[str]],
    pattern: Optional[re.Pattern] = None,
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    tolerances: SpatialTolerances = DEFAULT_TOLERANCES,
    trace: Optional[ExtractionTrace] = None,
) -> Optional[str]:
    """bbox/신뢰도 기반 필드 추출

    Args:
        document: 인식 결과 문서 (읽기 전용)
        spec_or_variants: FieldSpec 또는 라벨 변형 목록
        pattern: 값 형식 검사 정규식 (None이면 FieldSpec.value_pattern)
        min_confidence: 라인/단어 최소 신뢰도 (0~100)
        tolerances: 기하 허용 오차
        trace: 진단 기록 (선택)

    Returns:
        추출 값 또는 None
    """
    if isinstance(spec_or_variants, FieldSpec):
        key = spec_or_variants.key
        variants: List[str] = list(spec_or_variants.variants)
        value_pattern = pattern or spec_or_variants.value_pattern
    else:
        key = "field"
        variants = list(spec_or_variants)
        value_pattern = pattern

    if not document.has_spatial_data:
        if trace is not None:
            trace.record("spatial", "공간 데이터 없음", field=key)
        return None

    strategies = (
        ("same_line_pairs", lambda: same_line_pairs(document.lines, variants, min_confidence)),
        ("vertical_pairs", lambda: vertical_pairs(
            document.lines, variants, min_confidence, tolerances.vertical_x)),
        ("horizontal_proximity", lambda: horizontal_proximity(
            document.words, variants, min_confidence,
            tolerances.horizontal_gap, tolerances.horizontal_y)),
    )
    for name, run in strategies:
        value = run()
        if value and value_pattern is not None and not value_pattern.search(value):
            if trace is not None:
                trace.record("spatial", "형식 불일치", field=key, strategy=name, value=value)
            continue
        if value:
            if trace is not None:
                trace.record(
                    "spatial", "값 발견", field=key, strategy=name,
                    value=value, min_confidence=min_confidence,
                )
            return value
        if trace is not None:
            trace.record("spatial", "실패", field=key, strategy=name)
    return None


__all__ = [
    "DEFAULT_MIN_CONFIDENCE",
    "SpatialTolerances",
    "DEFAULT_TOLERANCES",
    "same_line_pairs",
    "vertical_pairs",
    "horizontal_proximity",
    "extract_field_spatially",
]
