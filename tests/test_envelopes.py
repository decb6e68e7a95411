"""
Envelope / 추출 모델 테스트
"""

import re

import pytest
from pydantic import ValidationError

from chart_ocr.models.envelopes import (
    BoundingBox,
    Envelope,
    ExtractionMeta,
    OCRMeta,
    OCRResultEnvelope,
    RecognizedDocument,
    RecognizedWord,
)
from chart_ocr.models.record import (
    Candidate,
    ExtractedRecord,
    ExtractionEnvelope,
    ExtractionTrace,
    FieldSpec,
)


class TestBoundingBox:
    """BoundingBox 모델 테스트"""

    def test_valid_bbox(self):
        box = BoundingBox(x0=10, y0=20, x1=30, y1=50)
        assert box.width == 20
        assert box.height == 30

    def test_degenerate_allowed(self):
        box = BoundingBox(x0=5, y0=5, x1=5, y1=5)
        assert box.width == 0

    def test_inverted_bbox_rejected(self):
        with pytest.raises(ValueError):
            BoundingBox(x0=30, y0=0, x1=10, y1=10)

    def test_union(self):
        a = BoundingBox(x0=0, y0=10, x1=20, y1=30)
        b = BoundingBox(x0=15, y0=0, x1=40, y1=25)
        assert a.union(b) == BoundingBox(x0=0, y0=0, x1=40, y1=30)


class TestRecognizedDocument:
    """RecognizedDocument 모델 테스트"""

    def test_confidence_range(self):
        box = BoundingBox(x0=0, y0=0, x1=1, y1=1)
        with pytest.raises(ValidationError):
            RecognizedWord(text="x", bbox=box, confidence=120)

    def test_text_only_document(self):
        doc = RecognizedDocument(text="MRN: 1")
        assert doc.has_spatial_data is False
        assert doc.confidence == 0.0

    def test_spatial_document(self, chart_document):
        assert chart_document.has_spatial_data is True
        assert chart_document.words == [w for line in chart_document.lines for w in line.words]

    def test_frozen(self):
        doc = RecognizedDocument(text="a")
        with pytest.raises(ValidationError):
            doc.text = "b"


class TestEnvelope:
    """Envelope 모델 테스트"""

    def test_ocr_envelope(self):
        env = OCRResultEnvelope(
            stage="ocr",
            data=RecognizedDocument(text="hello"),
            meta=OCRMeta(words=0, lines=0, source="bytes", engine="DummyOCR"),
        )
        assert env.version == "1.0"
        assert env.data.text == "hello"
        assert env.meta.engine == "DummyOCR"

    def test_invalid_stage(self):
        with pytest.raises(ValidationError):
            Envelope[RecognizedDocument, OCRMeta](
                stage="postprocess", data=RecognizedDocument(), meta=OCRMeta()
            )

    def test_invalid_source(self):
        with pytest.raises(ValidationError):
            OCRMeta(source="camera")


class TestExtractedRecord:
    """ExtractedRecord 모델 테스트"""

    @pytest.fixture
    def record(self):
        return ExtractedRecord(
            patient_name="John Smith",
            patient_id="A12345678",
            date_of_birth="03/15/1962",
            diagnosis="N/A",
            medications=("Metformin 500mg",),
            lab_results=(),
            raw_text="...",
        )

    def test_to_dict_keys(self, record):
        data = record.to_dict()
        assert list(data) == [
            "patientName", "patientId", "dateOfBirth", "diagnosis",
            "medications", "labResults", "rawText",
        ]
        assert data["medications"] == ["Metformin 500mg"]
        assert data["labResults"] == []

    def test_fields(self, record):
        assert record.fields["patientId"] == "A12345678"
        assert record.fields["diagnosis"] == "N/A"

    def test_extraction_envelope(self, record):
        env = ExtractionEnvelope(
            stage="extract",
            data=record,
            meta=ExtractionMeta(engine="DummyOCR", field_sources={"patientName": "spatial"}),
        )
        assert env.meta.field_sources["patientName"] == "spatial"
        assert env.meta.recognition_attempts == 0

    def test_invalid_field_source(self):
        with pytest.raises(ValidationError):
            ExtractionMeta(field_sources={"patientName": "guess"})


class TestFieldSpec:
    """FieldSpec 검증 테스트"""

    def test_single_group(self):
        spec = FieldSpec(key="patientId", variants=("mrn",), pattern=re.compile(r"MRN (\d+)"))
        assert spec.unknown == "N/A"

    def test_two_groups_rejected(self):
        with pytest.raises(ValueError):
            FieldSpec(key="x", variants=("x",), pattern=re.compile(r"(a)(b)"))

    def test_accepts_value_pattern(self):
        spec = FieldSpec(key="patientId", variants=("mrn",), value_pattern=re.compile(r"\d"))
        assert spec.accepts("A12345678")
        assert not spec.accepts("John Smith")
        assert not spec.accepts("")

    def test_accepts_any_non_empty_without_pattern(self):
        spec = FieldSpec(key="diagnosis", variants=("dx",))
        assert spec.accepts("Asthma")
        assert not spec.accepts(None)


class TestCandidate:
    """Candidate 정렬 키 테스트"""

    def test_sort_order(self):
        cands = [
            Candidate(value="late", confidence=1.0, source_index=5),
            Candidate(value="early", confidence=1.0, source_index=1),
            Candidate(value="strong", confidence=1.3, source_index=9),
            Candidate(value="pattern", confidence=1.0, source_index=-1),
        ]
        ranked = sorted(cands, key=Candidate.sort_key)
        assert [c.value for c in ranked] == ["strong", "pattern", "early", "late"]


class TestExtractionTrace:
    """ExtractionTrace 테스트"""

    def test_record_and_filter(self):
        trace = ExtractionTrace()
        trace.record("text", "후보 채택", field="patientId", strategy="colon", value="A1")
        trace.record("section", "섹션 진입", field="medications")
        assert len(trace) == 2
        assert [e.message for e in trace.for_field("patientId")] == ["후보 채택"]
        assert trace.to_list()[0]["detail"] == {"value": "A1"}
