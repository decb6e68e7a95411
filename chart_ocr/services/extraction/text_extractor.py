"""
텍스트 기반 필드 추출 모듈

평탄한 OCR 텍스트에서 필드 값을 추출합니다. 모든 전략의 후보를 모은 뒤
(중간 종료 없음) 신뢰도 순으로 정렬해 최상위 값을 선택합니다.

전략 (각 전략은 호출당 후보 0~1개를 반환하는 순수 함수):
    0. pattern_candidate: 필드 정규식을 전체 텍스트에 1회 적용 (신뢰도 1.0, 라인 -1)
    1. colon_split_candidate: 첫 콜론 기준 라벨/값 분리 (점수 + 0.3, 다음 줄 값은 + 0.2)
    2. leading_words_candidate: 라인 선두 1~4 토큰 윈도우 매칭 (점수, 다음 줄 값은 - 0.1)

랭킹:
    신뢰도 내림차순 → 동점이면 앞쪽 라인 우선

주의: 콜론/선두단어 전략의 신뢰도는 1.0을 넘을 수 있으며(최대 1.3)
패턴 전략(1.0)보다 앞설 수 있습니다. 이 동작은 의도적으로 보존합니다.

사용 예시:
    from chart_ocr.services.extraction.text_extractor import extract_field
    from chart_ocr.services.extraction.field_specs import PATIENT_NAME

    extract_field("Patient Name: John Smith", PATIENT_NAME)
    # 'John Smith'
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Sequence, Union

from chart_ocr.models.record import Candidate, ExtractionTrace, FieldSpec
from .field_matcher import (
    DEFAULT_THRESHOLD,
    LEADING_WORDS_THRESHOLD,
    best_label_match,
)

logger = logging.getLogger(__name__)

COLON_VALUE_BONUS = 0.3
COLON_NEXT_LINE_BONUS = 0.2
LEADING_NEXT_LINE_PENALTY = 0.1
MAX_LEADING_WORDS = 4

_COLON_RE = re.compile(r"[:：]")
_TOKEN_RE = re.compile(r"[^\s:：]+")
_VALUE_STRIP = " \t:：-–—"


# =============================================================================
# 공통 보조
# =============================================================================

def _next_line_value(lines: Sequence[str], index: int) -> Optional[str]:
    """다음 줄을 값으로 쓸 수 있으면 반환 (콜론 없음 + 길이 > 1)"""
    if index + 1 >= len(lines):
        return None
    nxt = lines[index + 1].strip()
    if len(nxt) > 1 and not _COLON_RE.search(nxt):
        return nxt
    return None


def _resolve_spec(
    spec_or_variants: Union[FieldSpec, Iterable[str]],
    pattern: Optional[re.Pattern],
) -> FieldSpec:
    if isinstance(spec_or_variants, FieldSpec):
        if pattern is None:
            return spec_or_variants
        return FieldSpec(
            key=spec_or_variants.key,
            variants=spec_or_variants.variants,
            pattern=pattern,
            unknown=spec_or_variants.unknown,
            value_pattern=spec_or_variants.value_pattern,
        )
    return FieldSpec(key="field", variants=tuple(spec_or_variants), pattern=pattern)


# =============================================================================
# 전략
# =============================================================================

def pattern_candidate(text: str, pattern: Optional[re.Pattern]) -> Optional[Candidate]:
    """전략 0: 필드 정규식을 전체 텍스트에 1회 적용"""
    if pattern is None or not text:
        return None
    m = pattern.search(text)
    if not m:
        return None
    value = (m.group(1) or "").strip()
    if not value:
        return None
    return Candidate(value=value, confidence=1.0, source_index=-1, strategy="pattern")


def colon_split_candidate(
    lines: Sequence[str],
    index: int,
    variants: Sequence[str],
) -> Optional[Candidate]:
    """전략 1: 첫 콜론 기준 라벨/값 분리"""
    line = lines[index].strip()
    if not line:
        return None
    parts = _COLON_RE.split(line, maxsplit=1)
    if len(parts) < 2:
        return None
    label, value = parts[0], parts[1].strip()

    match = best_label_match(label, variants, DEFAULT_THRESHOLD)
    if match is None:
        return None
    score, variant = match

    if value:
        return Candidate(
            value=value,
            confidence=score + COLON_VALUE_BONUS,
            source_index=index,
            strategy="colon_split",
            variant=variant,
        )

    nxt = _next_line_value(lines, index)
    if nxt is None:
        return None
    return Candidate(
        value=nxt,
        confidence=score + COLON_NEXT_LINE_BONUS,
        source_index=index,
        strategy="colon_split_next_line",
        variant=variant,
    )


def leading_words_candidate(
    lines: Sequence[str],
    index: int,
    variants: Sequence[str],
) -> Optional[Candidate]:
    """전략 2: 라인 선두 1~4 토큰 윈도우 매칭

    라인당 가장 점수가 높은 윈도우 하나만 후보로 남깁니다
    (동점이면 라벨을 더 많이 소비한 긴 윈도우 우선).
    """
    line = lines[index].strip()
    if not line:
        return None
    tokens = list(_TOKEN_RE.finditer(line))
    if not tokens:
        return None

    best: Optional[Candidate] = None
    for size in range(1, min(MAX_LEADING_WORDS, len(tokens)) + 1):
        window = " ".join(t.group(0) for t in tokens[:size])
        match = best_label_match(window, variants, LEADING_WORDS_THRESHOLD)
        if match is None:
            continue
        score, variant = match

        remainder = line[tokens[size - 1].end():].strip(_VALUE_STRIP)
        if remainder:
            cand = Candidate(
                value=remainder,
                confidence=score,
                source_index=index,
                strategy="leading_words",
                variant=variant,
            )
        else:
            nxt = _next_line_value(lines, index)
            if nxt is None:
                continue
            cand = Candidate(
                value=nxt,
                confidence=score - LEADING_NEXT_LINE_PENALTY,
                source_index=index,
                strategy="leading_words_next_line",
                variant=variant,
            )
        if best is None or cand.confidence >= best.confidence:
            best = cand
    return best


# =============================================================================
# 수집 / 랭킹
# =============================================================================

def collect_candidates(text: str, spec: FieldSpec) -> List[Candidate]:
    """모든 전략의 후보 수집 (중간 종료 없음)"""
    candidates: List[Candidate] = []
    if not text:
        return candidates

    cand = pattern_candidate(text, spec.pattern)
    if cand is not None:
        candidates.append(cand)

    lines = text.split("\n")
    for i in range(len(lines)):
        for strategy in (colon_split_candidate, leading_words_candidate):
            cand = strategy(lines, i, spec.variants)
            if cand is not None:
                candidates.append(cand)
    return candidates


def rank_candidates(candidates: Iterable[Candidate]) -> List[Candidate]:
    """신뢰도 내림차순, 동점이면 앞쪽 라인 우선 (안정 정렬)"""
    return sorted(candidates, key=Candidate.sort_key)


def extract_field(
    text: str,
    spec_or_variants: Union[FieldSpec, Iterable[str]],
    pattern: Optional[re.Pattern] = None,
    trace: Optional[ExtractionTrace] = None,
) -> Optional[str]:
    """텍스트에서 필드 값을 추출합니다.

    Args:
        text: 정리된 OCR 전체 텍스트
        spec_or_variants: FieldSpec 또는 라벨 변형 목록
        pattern: 추출 정규식 (FieldSpec의 패턴을 덮어씀)
        trace: 진단 기록 (선택)

    Returns:
        최상위 후보 값 또는 None (후보 없음)
    """
    spec = _resolve_spec(spec_or_variants, pattern)
    candidates = collect_candidates(text, spec)
    malformed = [c for c in candidates if not spec.accepts(c.value)]
    if malformed and trace is not None:
        trace.record(
            "text", "형식 불일치 후보 제외", field=spec.key,
            values=[c.value for c in malformed],
        )
    ranked = rank_candidates(c for c in candidates if spec.accepts(c.value))

    if not ranked:
        if trace is not None:
            trace.record("text", "후보 없음", field=spec.key)
        return None

    top = ranked[0]
    if trace is not None:
        trace.record(
            "text",
            "후보 선택",
            field=spec.key,
            strategy=top.strategy,
            value=top.value,
            confidence=round(top.confidence, 4),
            variant=top.variant,
            source_index=top.source_index,
            rejected=[
                {
                    "value": c.value,
                    "strategy": c.strategy,
                    "confidence": round(c.confidence, 4),
                    "source_index": c.source_index,
                }
                for c in ranked[1:]
            ],
        )
    return top.value


__all__ = [
    "pattern_candidate",
    "colon_split_candidate",
    "leading_words_candidate",
    "collect_candidates",
    "rank_candidates",
    "extract_field",
]
