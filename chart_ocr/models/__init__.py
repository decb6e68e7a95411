"""데이터 모델 패키지"""

from .envelopes import (
    BoundingBox,
    Envelope,
    ExtractionMeta,
    OCRMeta,
    OCRResultEnvelope,
    RecognizedDocument,
    RecognizedLine,
    RecognizedWord,
)
from .record import (
    Candidate,
    ExtractedRecord,
    ExtractionEnvelope,
    ExtractionTrace,
    FieldSpec,
    TraceEvent,
)

__all__ = [
    "BoundingBox",
    "Envelope",
    "ExtractionMeta",
    "OCRMeta",
    "OCRResultEnvelope",
    "RecognizedDocument",
    "RecognizedLine",
    "RecognizedWord",
    "Candidate",
    "ExtractedRecord",
    "ExtractionEnvelope",
    "ExtractionTrace",
    "FieldSpec",
    "TraceEvent",
]
