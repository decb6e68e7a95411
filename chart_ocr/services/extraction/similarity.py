"""
문자열 유사도 모듈

OCR 노이즈(오탈자, 문장부호 누락 등)에 강건한 라벨 비교를 위한 기본 함수.
시스템 내의 모든 문자열 비교는 normalize() 결과를 기준으로 합니다.

- normalize: 소문자화 → 단어/공백 이외 문자 제거 → 연속 공백 축약 → trim
- edit_distance: Levenshtein 거리 (삽입/삭제/치환, 짧은 문자열 길이만큼의 메모리)
- similarity: 1 - 거리 / 최대 길이, 범위 [0, 1]
"""
from __future__ import annotations

import re

_NON_WORD_RE = re.compile(r"[^\w\s]")
_SPACES_RE = re.compile(r"\s+")


def normalize(text: str) -> str:
    """비교용 정규화 (멱등)

    사용 예시:
        >>> normalize("  Patient-Name:  ")
        'patientname'
        >>> normalize("Date of   Birth")
        'date of birth'
    """
    if not text:
        return ""
    t = text.lower()
    t = _NON_WORD_RE.sub("", t)
    t = _SPACES_RE.sub(" ", t)
    return t.strip()


def edit_distance(a: str, b: str) -> int:
    """Levenshtein 거리

    행 하나만 유지하며, 행 길이는 짧은 쪽 문자열 길이 + 1 입니다.
    """
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            ins = previous[j] + 1
            dele = current[j - 1] + 1
            subst = previous[j - 1] + (ca != cb)
            current.append(min(ins, dele, subst))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """정규화된 유사도 [0, 1] (둘 다 빈 문자열이면 1.0)"""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - edit_distance(a, b) / longest


__all__ = ["normalize", "edit_distance", "similarity"]
