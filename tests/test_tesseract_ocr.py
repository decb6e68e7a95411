"""Tesseract OCR 서비스 테스트

pytesseract.image_to_data 결과 변환과 오류 매핑을 모킹으로 검증합니다.
tesseract 바이너리가 있으면 실제 인식 테스트도 실행합니다.

스킵하고 싶다면:
    pytest tests/ -v -k "not real"
"""

import shutil
from unittest.mock import patch

import pytest
from PIL import Image, ImageDraw, ImageFont
from pytesseract import TesseractError, TesseractNotFoundError

from chart_ocr.services.ocr.base import RecognitionError
from chart_ocr.services.ocr.tesseract_ocr import TesseractOCR

IMAGE_TO_DATA = 'chart_ocr.services.ocr.tesseract_ocr.pytesseract.image_to_data'


@pytest.fixture
def tesseract_data():
    """image_to_data(Output.DICT) 형태의 가짜 결과 (블록 2개)"""
    return {
        "text":      ["", "Patient", "Name:", "John", "", "MRN:", "A123", "~"],
        "conf":      ["-1", 96, 94, 90, "-1", 88, 92, -1],
        "left":      [0, 80, 10, 160, 0, 10, 70, 300],
        "top":       [0, 10, 12, 10, 0, 60, 61, 60],
        "width":     [0, 60, 50, 40, 0, 40, 50, 5],
        "height":    [0, 20, 20, 20, 0, 20, 20, 5],
        "block_num": [1, 1, 1, 1, 2, 2, 2, 2],
        "par_num":   [0, 1, 1, 1, 0, 1, 1, 1],
        "line_num":  [0, 1, 1, 1, 0, 1, 1, 1],
    }


@pytest.fixture
def tesseract_ocr():
    return TesseractOCR(lang="eng")


class TestToDocument:
    """image_to_data → RecognizedDocument 변환 테스트"""

    def test_lines_and_words(self, tesseract_data):
        doc = TesseractOCR.to_document(tesseract_data)
        assert [line.text for line in doc.lines] == ["Name: Patient John", "MRN: A123"]
        assert len(doc.words) == 5

    def test_words_sorted_left_to_right(self, tesseract_data):
        doc = TesseractOCR.to_document(tesseract_data)
        xs = [w.bbox.x0 for w in doc.lines[0].words]
        assert xs == sorted(xs)

    def test_blank_line_between_blocks(self, tesseract_data):
        doc = TesseractOCR.to_document(tesseract_data)
        assert doc.text == "Name: Patient John\n\nMRN: A123"
        assert len(doc.blocks) == 2

    def test_confidence(self, tesseract_data):
        doc = TesseractOCR.to_document(tesseract_data)
        assert doc.confidence == pytest.approx(92.0)
        assert doc.lines[1].confidence == pytest.approx(90.0)

    def test_bbox(self, tesseract_data):
        doc = TesseractOCR.to_document(tesseract_data)
        box = doc.lines[1].bbox
        assert (box.x0, box.y0, box.x1, box.y1) == (10, 60, 120, 81)

    def test_empty(self):
        doc = TesseractOCR.to_document({"text": []})
        assert doc.text == ""
        assert doc.confidence == 0.0
        assert doc.has_spatial_data is False


class TestRecognize:
    """TesseractOCR.recognize 테스트 (모킹)"""

    def test_recognize_bytes(self, tesseract_ocr, sample_image_bytes, tesseract_data):
        with patch(IMAGE_TO_DATA, return_value=tesseract_data):
            envelope = tesseract_ocr.recognize(sample_image_bytes)
        assert envelope.stage == "ocr"
        assert envelope.meta.source == "bytes"
        assert envelope.meta.engine == "Tesseract"
        assert envelope.meta.lines == 2
        assert envelope.meta.words == 5

    def test_timeout_forwarded(self, tesseract_ocr, sample_image, tesseract_data):
        with patch(IMAGE_TO_DATA, return_value=tesseract_data) as mock_call:
            tesseract_ocr.recognize_image(sample_image, lang="kor", timeout=7)
        kwargs = mock_call.call_args.kwargs
        assert kwargs["timeout"] == 7
        assert kwargs["lang"] == "kor"
        assert kwargs["config"] == "--oem 3 --psm 6"

    def test_no_timeout(self, tesseract_ocr, sample_image, tesseract_data):
        with patch(IMAGE_TO_DATA, return_value=tesseract_data) as mock_call:
            tesseract_ocr.recognize_image(sample_image)
        assert mock_call.call_args.kwargs["timeout"] == 0

    @pytest.mark.parametrize("error", [
        TesseractNotFoundError(),
        TesseractError(1, "bad lang"),
        RuntimeError("Tesseract process timeout"),
    ])
    def test_errors_wrapped(self, tesseract_ocr, sample_image, error):
        with patch(IMAGE_TO_DATA, side_effect=error):
            with pytest.raises(RecognitionError):
                tesseract_ocr.recognize_image(sample_image)

    def test_undecodable_bytes(self, tesseract_ocr):
        with patch(IMAGE_TO_DATA) as mock_call:
            with pytest.raises(RecognitionError):
                tesseract_ocr.recognize(b"not an image")
        mock_call.assert_not_called()


# =============================================================================
# 실제 tesseract 바이너리 테스트
# =============================================================================

@pytest.mark.skipif(shutil.which("tesseract") is None, reason="tesseract 바이너리 없음")
class TestRealTesseract:
    """실제 tesseract 실행 테스트"""

    def test_real_recognize(self, tesseract_ocr):
        img = Image.new("RGB", (800, 200), color="white")
        draw = ImageDraw.Draw(img)
        draw.text((20, 60), "MRN: A12345678", fill="black", font=ImageFont.load_default(size=48))

        envelope = tesseract_ocr.run_ocr(img, timeout=30)

        assert envelope.meta.engine == "Tesseract"
        assert envelope.data.has_spatial_data
        assert envelope.meta.words == len(envelope.data.words)
