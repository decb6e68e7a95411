"""
섹션 목록 추출 모듈 (약물 / 검사 결과)

정리된 텍스트 라인을 스캔하며:
- 헤더 변형과 퍼지 매칭(0.5)되는 라인에서 섹션 진입
- 섹션 안에서는 목록 마커(불릿, 숫자, 'A)'/'B.' 등)를 제거하고
  길이 > 2 이면서 'Label:' 형태의 단독 헤더가 아닌 라인을 수집
- 다른 섹션 키워드로 시작하는 라인을 만나면 즉시 종료

검사 결과는 일반 스캔 전에 'CLINICAL DATA:' 전용 캡처를 먼저 시도합니다.
"""
from __future__ import annotations

import logging
import re
from typing import List, Optional

from chart_ocr.models.record import ExtractionTrace
from .field_matcher import SECTION_HEADER_THRESHOLD, is_label_match
from .field_specs import LAB_RESULTS, MEDICATIONS, SECTION_SPECS, stop_pattern_for

logger = logging.getLogger(__name__)

# 불릿 / 숫자 마커 (1. 2) 3]) / 문자 마커 (A) B.)
_LIST_MARKER_RE = re.compile(r"^(?:[-•*·▪◦]+\s*|\d+[.)\]]\s+|[A-Za-z][.)]\s+)")
# 'Label:' 단독 헤더
_BARE_LABEL_RE = re.compile(r"^[A-Za-z][A-Za-z /&]*[:：]\s*$")
_CLINICAL_DATA_RE = re.compile(r"^\s*CLINICAL\s+DATA\s*[:：]\s*(.*)$", re.IGNORECASE)
_MIN_ITEM_LENGTH = 2


def strip_list_marker(line: str) -> str:
    """라인 선두의 목록 마커 제거

    사용 예시:
        >>> strip_list_marker("A) Aspirin 81mg")
        'Aspirin 81mg'
        >>> strip_list_marker("2. Metformin 500mg")
        'Metformin 500mg'
    """
    return _LIST_MARKER_RE.sub("", line.strip(), count=1).strip()


def extract_section(
    text: str,
    section_key: str,
    trace: Optional[ExtractionTrace] = None,
) -> List[str]:
    """헤더~다음 섹션 사이 라인을 목록으로 추출합니다.

    Args:
        text: 정리된 OCR 전체 텍스트
        section_key: 'medications' | 'labResults'
        trace: 진단 기록 (선택)

    Returns:
        목록 항목 리스트 (원문 순서)
    """
    spec = SECTION_SPECS[section_key]
    stop_re = stop_pattern_for(section_key)

    items: List[str] = []
    in_section = False
    for raw in (text or "").split("\n"):
        line = raw.strip()
        if not line:
            continue

        if in_section and stop_re.match(line):
            if trace is not None:
                trace.record("section", "섹션 종료", field=section_key, line=line)
            break

        if is_label_match(line, spec.headers, SECTION_HEADER_THRESHOLD):
            if trace is not None and not in_section:
                trace.record("section", "섹션 진입", field=section_key, header=line)
            in_section = True
            continue

        if not in_section:
            continue

        cleaned = strip_list_marker(line)
        if len(cleaned) <= _MIN_ITEM_LENGTH or _BARE_LABEL_RE.match(cleaned):
            if trace is not None:
                trace.record("section", "라인 제외", field=section_key, line=line)
            continue
        items.append(cleaned)

    return items


def _split_clinical_data(payload: str) -> List[str]:
    """세미콜론/쉼표 우선 분리, 둘 다 없으면 공백 분리"""
    if ";" in payload or "," in payload:
        parts = re.split(r"[;,]", payload)
    else:
        parts = payload.split()
    return [p.strip() for p in parts if p.strip()]


def extract_clinical_data(text: str) -> List[str]:
    """'CLINICAL DATA:' 캡처 (한 줄 또는 여러 줄)

    같은 줄에 값이 없으면 빈 줄 또는 다음 'Label:' 헤더 직전까지의 줄을 모읍니다.
    여러 줄을 모았으면 각 줄을 (쉼표/세미콜론 분리 후) 항목으로, 한 줄이면 공백으로 나눕니다.
    """
    lines = (text or "").split("\n")
    for i, raw in enumerate(lines):
        m = _CLINICAL_DATA_RE.match(raw)
        if not m:
            continue
        payload = m.group(1).strip()
        if not payload:
            collected = []
            for nxt in lines[i + 1:]:
                s = nxt.strip()
                if not s or _BARE_LABEL_RE.match(s) or re.match(r"^[A-Za-z][A-Za-z ]*[:：]", s):
                    break
                collected.append(s)
            # 여러 줄이면 줄 경계가 항목 구분자
            payload = "; ".join(collected)
        items = _split_clinical_data(payload)
        if items:
            return items
    return []


def extract_medications(text: str, trace: Optional[ExtractionTrace] = None) -> List[str]:
    """약물 목록 추출"""
    meds = extract_section(text, MEDICATIONS.key, trace=trace)
    logger.debug(f"약물 {len(meds)}개 추출")
    return meds


def extract_lab_results(text: str, trace: Optional[ExtractionTrace] = None) -> List[str]:
    """검사 결과 목록 추출 ('CLINICAL DATA:' 우선)"""
    clinical = extract_clinical_data(text)
    if clinical:
        if trace is not None:
            trace.record(
                "section", "CLINICAL DATA 캡처",
                field=LAB_RESULTS.key, strategy="clinical_data", items=clinical,
            )
        return clinical
    labs = extract_section(text, LAB_RESULTS.key, trace=trace)
    logger.debug(f"검사 결과 {len(labs)}개 추출")
    return labs


__all__ = [
    "strip_list_marker",
    "extract_section",
    "extract_clinical_data",
    "extract_medications",
    "extract_lab_results",
]
