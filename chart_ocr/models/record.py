"""추출 데이터 모델

- FieldSpec: 필드 키 + 라벨 변형 + 추출 패턴 (field_specs 테이블의 한 행)
- Candidate: 전략 하나가 만든 (값, 신뢰도, 라인 위치) 후보
- ExtractedRecord: 최종 결과 (불변)
- ExtractionTrace: 사람이 검토할 수 있는 추출 결정 기록
"""
from __future__ import annotations

import logging
import re
import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .envelopes import Envelope, ExtractionMeta

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldSpec:
    """필드 추출 설정"""

    key: str
    variants: Tuple[str, ...]
    pattern: Optional[re.Pattern] = None  # 캡처 그룹 1개
    unknown: str = "N/A"  # 추출 실패 시 값
    value_pattern: Optional[re.Pattern] = None  # 값 형식 검사 (search)

    def __post_init__(self):
        if self.pattern is not None and self.pattern.groups != 1:
            raise ValueError(
                f"{self.key} 패턴은 캡처 그룹이 정확히 1개여야 합니다 (현재 {self.pattern.groups}개)"
            )

    def accepts(self, value: Optional[str]) -> bool:
        """값이 필드 형식에 맞는지 여부 (value_pattern이 없으면 비어있지 않은 값 모두 허용)"""
        if not value:
            return False
        return self.value_pattern is None or self.value_pattern.search(value) is not None


@dataclass(frozen=True)
class Candidate:
    """랭킹 전 후보값"""

    value: str
    confidence: float  # 전략별 스케일
    source_index: int  # 라인 인덱스 (패턴 전략은 -1)
    strategy: str = ""
    variant: Optional[str] = None

    def sort_key(self) -> Tuple[float, int]:
        # 신뢰도 내림차순 → 앞쪽 라인 우선
        return (-self.confidence, self.source_index)


class ExtractedRecord(BaseModel):
    """문서에서 추출한 최종 레코드"""
    model_config = ConfigDict(frozen=True)

    patient_name: str
    patient_id: str
    date_of_birth: str
    diagnosis: str
    medications: Tuple[str, ...] = Field(default_factory=tuple)
    lab_results: Tuple[str, ...] = Field(default_factory=tuple)
    raw_text: str = ""

    @property
    def fields(self) -> Dict[str, str]:
        """필드 키 → 값"""
        return {
            "patientName": self.patient_name,
            "patientId": self.patient_id,
            "dateOfBirth": self.date_of_birth,
            "diagnosis": self.diagnosis,
        }

    def to_dict(self) -> Dict[str, Any]:
        """리포트 생성기로 넘기는 camelCase 딕셔너리"""
        return {
            **self.fields,
            "medications": list(self.medications),
            "labResults": list(self.lab_results),
            "rawText": self.raw_text,
        }


ExtractionEnvelope = Envelope[ExtractedRecord, ExtractionMeta]


# =============================================================================
# 진단 기록
# =============================================================================

@dataclass
class TraceEvent:
    """추출 결정 하나"""

    stage: str  # 'preprocess' | 'ocr' | 'spatial' | 'text' | 'section' | 'record'
    message: str
    field: Optional[str] = None
    strategy: Optional[str] = None
    detail: Dict[str, Any] = dataclasses.field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage,
            "field": self.field,
            "strategy": self.strategy,
            "message": self.message,
            "detail": self.detail,
        }


@dataclass
class ExtractionTrace:
    """추출 과정의 구조화된 진단 기록

    반환값에는 영향을 주지 않으며, 모든 이벤트는 DEBUG 로그로도 남습니다.
    """

    events: List[TraceEvent] = dataclasses.field(default_factory=list)

    def record(
        self,
        stage: str,
        message: str,
        *,
        field: Optional[str] = None,
        strategy: Optional[str] = None,
        **detail: Any,
    ) -> TraceEvent:
        event = TraceEvent(stage=stage, message=message, field=field, strategy=strategy, detail=detail)
        self.events.append(event)
        logger.debug(f"[trace] {stage} field={field} strategy={strategy}: {message} {detail}")
        return event

    def for_field(self, key: str) -> List[TraceEvent]:
        return [e for e in self.events if e.field == key]

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self.events]

    def __len__(self) -> int:
        return len(self.events)


__all__ = [
    "FieldSpec",
    "Candidate",
    "ExtractedRecord",
    "ExtractionEnvelope",
    "TraceEvent",
    "ExtractionTrace",
]
