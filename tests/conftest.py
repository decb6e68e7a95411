"""테스트 픽스처 및 설정"""

import io
from pathlib import Path

import pytest
from dotenv import load_dotenv
from PIL import Image

from chart_ocr.models.envelopes import BoundingBox, RecognizedLine, RecognizedWord
from chart_ocr.services.ocr.dummy_ocr import SAMPLE_CHART_TEXT, DummyOCR, document_from_text
from chart_ocr.settings import Settings

# 프로젝트 루트의 .env 파일 로드
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)


def _make_word(text, x0, y0, x1=None, y1=None, confidence=95.0):
    x1 = x0 + 10 * len(text) if x1 is None else x1
    y1 = y0 + 20 if y1 is None else y1
    return RecognizedWord(
        text=text,
        bbox=BoundingBox(x0=x0, y0=y0, x1=x1, y1=y1),
        confidence=confidence,
    )


def _make_line(words, confidence=None):
    bbox = words[0].bbox
    for w in words[1:]:
        bbox = bbox.union(w.bbox)
    if confidence is None:
        confidence = sum(w.confidence for w in words) / len(words)
    return RecognizedLine(
        text=" ".join(w.text for w in words),
        bbox=bbox,
        confidence=confidence,
        words=list(words),
    )


@pytest.fixture
def make_word():
    """RecognizedWord 생성 헬퍼 (기본 높이 20px, 글자당 10px)"""
    return _make_word


@pytest.fixture
def make_line():
    """RecognizedLine 생성 헬퍼 (bbox = 단어 bbox 합집합)"""
    return _make_line


@pytest.fixture
def dummy_ocr_service():
    """더미 OCR 서비스 픽스처"""
    return DummyOCR()


@pytest.fixture
def chart_text():
    """샘플 차트 텍스트"""
    return SAMPLE_CHART_TEXT


@pytest.fixture
def chart_document(chart_text):
    """샘플 차트의 합성 공간 문서"""
    return document_from_text(chart_text)


@pytest.fixture
def test_settings():
    """더미 OCR + 기본 허용 오차 설정"""
    return Settings(ocr_provider="dummy", ocr_timeout_s=5.0)


@pytest.fixture
def sample_image():
    """샘플 이미지 픽스처"""
    return Image.new("RGB", (100, 100), color="white")


@pytest.fixture
def sample_image_bytes(sample_image):
    """PNG 바이트 데이터"""
    buf = io.BytesIO()
    sample_image.save(buf, format="PNG")
    return buf.getvalue()
