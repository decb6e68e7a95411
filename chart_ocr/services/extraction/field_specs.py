"""
필드/섹션 추출 설정 테이블

추출 로직과 분리된 데이터 주도 테이블입니다. 패턴을 바꿀 때 추출기 코드는
건드리지 않습니다. 패턴은 모듈 로드 시 한 번만 컴파일합니다.

- FIELD_SPECS: patientName / patientId / dateOfBirth / diagnosis
- SECTION_SPECS: medications / labResults (헤더 변형 + 섹션 키워드)
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Tuple

from chart_ocr.models.record import FieldSpec

# =============================================================================
# 필드 테이블
# =============================================================================

PATIENT_NAME = FieldSpec(
    key="patientName",
    variants=(
        "patient name", "name", "full name", "pt name", "patient",
        "name of patient", "patient full name", "legal name",
    ),
    # 환자 라벨 뒤 토큰 ~ 다음 'Age:' 표시 직전
    pattern=re.compile(
        r"\bpatient(?:\s+name)?\s*[:\-]?\s*([A-Za-z][A-Za-z.,'\- ]*?)\s+Age\s*:",
        re.IGNORECASE,
    ),
    unknown="Unknown",
    # 문자로 시작, 숫자/콜론 없음
    value_pattern=re.compile(r"^[^\W\d_][^\d:：]*$"),
)

PATIENT_ID = FieldSpec(
    key="patientId",
    variants=(
        "mrn", "patient id", "id", "medical record number", "record number",
        "patient number", "chart number", "account number", "record no",
        "medical record no", "pt id", "patient mrn",
    ),
    pattern=re.compile(
        r"\b(?:MRN|patient\s+id|medical\s+record\s+(?:number|no\.?))\s*[:#\-]?\s*([A-Z0-9][A-Z0-9\-]{3,})\b",
        re.IGNORECASE,
    ),
    # 숫자를 포함한 영숫자 식별자
    value_pattern=re.compile(r"^(?=.*\d)[A-Za-z0-9][A-Za-z0-9\-/# ]{2,}$"),
)

DATE_OF_BIRTH = FieldSpec(
    key="dateOfBirth",
    variants=(
        "dob", "date of birth", "birth date", "birthdate", "born",
        "date birth", "patient dob", "pt dob", "birthday",
    ),
    # DOB 라벨 뒤 DD/MM/YYYY
    pattern=re.compile(
        r"\b(?:DOB|D\.O\.B\.?|date\s+of\s+birth|birth\s*date)\s*[:\-]?\s*(\d{2}/\d{2}/\d{4})",
        re.IGNORECASE,
    ),
    value_pattern=re.compile(
        r"\d{1,4}[/\-. ]\d{1,2}[/\-. ]\d{2,4}|[A-Za-z]{3,}\.? \d{1,2},? \d{4}"
    ),
)

DIAGNOSIS = FieldSpec(
    key="diagnosis",
    variants=(
        "diagnosis", "assessment", "impression", "dx", "diagnoses",
        "primary diagnosis", "clinical impression", "findings",
    ),
    pattern=re.compile(
        r"\b(?:primary\s+)?(?:diagnosis|dx)\s*:[ \t]*(\S[^\n]*)",
        re.IGNORECASE,
    ),
)

FIELD_SPECS: Tuple[FieldSpec, ...] = (PATIENT_NAME, PATIENT_ID, DATE_OF_BIRTH, DIAGNOSIS)
FIELD_SPECS_BY_KEY: Dict[str, FieldSpec] = {spec.key: spec for spec in FIELD_SPECS}


# =============================================================================
# 섹션 테이블
# =============================================================================

@dataclass(frozen=True)
class SectionSpec:
    """목록 섹션 설정

    - headers: 섹션 진입 헤더 변형 (퍼지 매칭 0.5)
    - keywords: 다른 섹션의 종료 판정에 쓰이는 이 섹션의 선두 키워드
    """

    key: str
    headers: Tuple[str, ...]
    keywords: Tuple[str, ...]


MEDICATIONS = SectionSpec(
    key="medications",
    headers=("medications", "meds", "current medications", "rx", "prescriptions", "drug list"),
    keywords=("medications", "medication", "meds", "current medications", "prescriptions", "rx", "drug list"),
)

LAB_RESULTS = SectionSpec(
    key="labResults",
    headers=("lab results", "labs", "laboratory", "lab values", "test results", "laboratory results"),
    keywords=("lab", "labs", "laboratory", "lab results", "test results", "clinical data"),
)

# 목록 섹션은 아니지만 섹션 경계가 되는 차트 헤더
BOUNDARY_KEYWORDS: Tuple[str, ...] = (
    "diagnosis", "assessment", "history", "physical", "plan", "impression", "allergies",
)

SECTION_SPECS: Dict[str, SectionSpec] = {
    MEDICATIONS.key: MEDICATIONS,
    LAB_RESULTS.key: LAB_RESULTS,
}


def stop_keywords_for(section_key: str) -> Tuple[str, ...]:
    """section_key 섹션을 끝내는 다른 섹션 키워드 목록"""
    own = set(SECTION_SPECS[section_key].keywords)
    keywords = [
        kw
        for key, spec in SECTION_SPECS.items()
        if key != section_key
        for kw in spec.keywords
        if kw not in own
    ]
    keywords.extend(BOUNDARY_KEYWORDS)
    return tuple(keywords)


_STOP_PATTERNS: Dict[str, re.Pattern] = {}


def stop_pattern_for(section_key: str) -> re.Pattern:
    """라인 선두 키워드 매칭 패턴 (캐시)"""
    pat = _STOP_PATTERNS.get(section_key)
    if pat is None:
        # 긴 키워드 우선
        kws = sorted(stop_keywords_for(section_key), key=len, reverse=True)
        alternation = "|".join(re.escape(kw).replace(r"\ ", r"\s+") for kw in kws)
        pat = re.compile(rf"^(?:{alternation})(?:[\s:]|$)", re.IGNORECASE)
        _STOP_PATTERNS[section_key] = pat
    return pat


__all__ = [
    "PATIENT_NAME",
    "PATIENT_ID",
    "DATE_OF_BIRTH",
    "DIAGNOSIS",
    "FIELD_SPECS",
    "FIELD_SPECS_BY_KEY",
    "SectionSpec",
    "MEDICATIONS",
    "LAB_RESULTS",
    "BOUNDARY_KEYWORDS",
    "SECTION_SPECS",
    "stop_keywords_for",
    "stop_pattern_for",
]
