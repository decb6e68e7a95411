"""
라벨 퍼지 매칭 모듈

텍스트 조각이 알려진 라벨 변형(예: 'dob', 'date of birth') 중 하나와
일치하는지를 비용이 싼 순서대로 판정합니다.

판정 순서 (정규화된 문자열 기준):
    1. 완전 일치 → 점수 1.0
    2. 부분 문자열 포함 (양방향) → 두 문자열의 유사도
    3. 유사도 >= threshold → 유사도

호출 위치별 임계값:
    - 섹션 헤더: 0.5
    - 콜론 라벨 / 인라인 라벨: 0.6
    - 선두 단어 윈도우: 0.7
"""
from __future__ import annotations

from typing import Iterable, Optional, Tuple

from .similarity import normalize, similarity

DEFAULT_THRESHOLD = 0.6
SECTION_HEADER_THRESHOLD = 0.5
LEADING_WORDS_THRESHOLD = 0.7


def best_label_match(
    text: str,
    variants: Iterable[str],
    threshold: float = DEFAULT_THRESHOLD,
) -> Optional[Tuple[float, str]]:
    """가장 잘 맞는 라벨 변형과 점수를 반환합니다.

    Args:
        text: 비교할 텍스트 (라벨 후보)
        variants: 라벨 변형 목록
        threshold: 퍼지 매칭 최소 유사도

    Returns:
        (점수, 변형) 또는 None (어떤 변형과도 일치하지 않을 때)
    """
    normalized = normalize(text)
    if not normalized:
        return None

    pairs = [(v, normalize(v)) for v in variants]
    pairs = [(v, nv) for v, nv in pairs if nv]

    # 1) 완전 일치
    for v, nv in pairs:
        if normalized == nv:
            return 1.0, v

    # 2) 부분 문자열 포함
    best: Optional[Tuple[float, str]] = None
    for v, nv in pairs:
        if nv in normalized or normalized in nv:
            score = similarity(normalized, nv)
            if best is None or score > best[0]:
                best = (score, v)
    if best is not None:
        return best

    # 3) 퍼지 매칭 (OCR 오탈자)
    for v, nv in pairs:
        score = similarity(normalized, nv)
        if score >= threshold and (best is None or score > best[0]):
            best = (score, v)
    return best


def label_match_score(
    text: str,
    variants: Iterable[str],
    threshold: float = DEFAULT_THRESHOLD,
) -> Optional[float]:
    """일치 점수 (불일치 시 None)"""
    match = best_label_match(text, variants, threshold)
    return match[0] if match else None


def is_label_match(
    text: str,
    variants: Iterable[str],
    threshold: float = DEFAULT_THRESHOLD,
) -> bool:
    """텍스트가 라벨 변형 중 하나와 일치하는지 여부"""
    return best_label_match(text, variants, threshold) is not None


__all__ = [
    "DEFAULT_THRESHOLD",
    "SECTION_HEADER_THRESHOLD",
    "LEADING_WORDS_THRESHOLD",
    "best_label_match",
    "label_match_score",
    "is_label_match",
]
