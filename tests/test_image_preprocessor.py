"""이미지 전처리 모듈 테스트"""

import io

import numpy as np
import pytest
from PIL import Image

from chart_ocr.services.preprocessing.image_preprocessor import (
    ImagePreprocessor,
    PreprocessingError,
    Settings,
    adaptive_binarize,
    apply_pipeline,
    equalize_histogram,
    flatten_transparency,
    integral_image,
    normalize_mode,
    open_with_exif,
    save_png_bytes,
    to_grayscale,
    to_luma,
)


# =============================================================================
# 테스트 픽스처
# =============================================================================

@pytest.fixture
def noisy_rgb_array():
    """40x30 랜덤 RGB 배열 (시드 고정)"""
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=(30, 40, 3), dtype=np.uint8)


@pytest.fixture
def text_like_image():
    """흰 배경 60x60 + 가운데 6x6 검은 사각형"""
    arr = np.full((60, 60, 3), 255, dtype=np.uint8)
    arr[27:33, 27:33] = 0
    return Image.fromarray(arr)


@pytest.fixture
def sample_rgba_image():
    """100x100 RGBA 이미지 (투명 채널 포함)"""
    return Image.new("RGBA", (100, 100), color=(200, 200, 200, 128))


# =============================================================================
# 로드 / 모드
# =============================================================================

class TestLoadSave:
    """로드/저장 함수 테스트"""

    def test_open_with_exif(self, sample_image_bytes):
        img = open_with_exif(sample_image_bytes)
        assert isinstance(img, Image.Image)
        assert img.size == (100, 100)

    def test_open_undecodable(self):
        with pytest.raises(PreprocessingError):
            open_with_exif(b"definitely not an image")

    def test_open_empty(self):
        with pytest.raises(PreprocessingError):
            open_with_exif(b"")

    def test_preprocessing_error_is_value_error(self):
        assert issubclass(PreprocessingError, ValueError)

    def test_save_png_bytes(self, sample_image):
        result = save_png_bytes(sample_image)
        assert result[:8] == b'\x89PNG\r\n\x1a\n'

    def test_flatten_transparency(self, sample_rgba_image):
        assert flatten_transparency(sample_rgba_image).mode == "RGB"

    def test_normalize_mode(self):
        assert normalize_mode(Image.new("L", (5, 5))).mode == "RGB"


# =============================================================================
# 픽셀 연산
# =============================================================================

class TestGrayscale:
    """그레이스케일 테스트"""

    def test_luma_weights(self):
        arr = np.array([[[255, 0, 0], [0, 255, 0], [0, 0, 255]]], dtype=np.uint8)
        assert to_luma(arr).tolist() == [[76, 150, 29]]

    def test_channels_replicated(self, noisy_rgb_array):
        gray = to_grayscale(noisy_rgb_array)
        assert gray.shape == noisy_rgb_array.shape
        assert np.array_equal(gray[:, :, 0], gray[:, :, 1])
        assert np.array_equal(gray[:, :, 1], gray[:, :, 2])

    def test_zero_dimension(self):
        with pytest.raises(PreprocessingError):
            to_luma(np.zeros((0, 5, 3), dtype=np.uint8))


class TestEqualizeHistogram:
    """히스토그램 평활화 테스트"""

    def test_two_values_stretched(self):
        luma = np.array([[10, 20]], dtype=np.uint8)
        assert equalize_histogram(luma).tolist() == [[0, 255]]

    def test_single_valued_unchanged(self):
        luma = np.full((8, 8), 128, dtype=np.uint8)
        out = equalize_histogram(luma)
        assert np.array_equal(out, luma)
        assert out is not luma

    def test_monotonic(self, noisy_rgb_array):
        luma = to_luma(noisy_rgb_array)
        out = equalize_histogram(luma)
        order = np.argsort(luma.ravel(), kind="stable")
        mapped = out.ravel()[order].astype(int)
        assert np.all(np.diff(mapped) >= 0)


class TestIntegralImage:
    """적분 영상 테스트"""

    def test_padding_and_total(self, noisy_rgb_array):
        luma = to_luma(noisy_rgb_array)
        sat = integral_image(luma)
        assert sat.shape == (31, 41)
        assert np.all(sat[0, :] == 0)
        assert np.all(sat[:, 0] == 0)
        assert sat[-1, -1] == int(luma.astype(np.int64).sum())

    def test_region_sum(self):
        luma = np.arange(12, dtype=np.uint8).reshape(3, 4)
        sat = integral_image(luma)
        # rows 1..2, cols 1..2
        region = sat[3, 3] - sat[1, 3] - sat[3, 1] + sat[1, 1]
        assert region == int(luma[1:3, 1:3].sum())


class TestAdaptiveBinarize:
    """적응형 이진화 테스트"""

    def test_flat_image_is_white(self):
        luma = np.full((20, 20), 90, dtype=np.uint8)
        assert np.all(adaptive_binarize(luma) == 255)

    def test_dark_square_on_white(self, text_like_image):
        luma = to_luma(np.asarray(text_like_image))
        out = adaptive_binarize(luma, block_size=15, offset=10)
        assert out[30, 30] == 0
        assert out[0, 0] == 255
        assert out[59, 59] == 255

    def test_matches_naive_window_mean(self, noisy_rgb_array):
        luma = to_luma(noisy_rgb_array)
        out = adaptive_binarize(luma, block_size=5, offset=3)
        h, w = luma.shape
        for y, x in [(0, 0), (2, 7), (15, 20), (h - 1, w - 1)]:
            win = luma[max(0, y - 2):min(h, y + 3), max(0, x - 2):min(w, x + 3)]
            expected = 255 if luma[y, x] > win.mean() - 3 else 0
            assert out[y, x] == expected

    @pytest.mark.parametrize("block_size", [0, 4, -3])
    def test_invalid_block_size(self, block_size):
        with pytest.raises(PreprocessingError):
            adaptive_binarize(np.zeros((5, 5), dtype=np.uint8), block_size=block_size)


# =============================================================================
# 클래스 기반 API
# =============================================================================

class TestImagePreprocessor:
    """ImagePreprocessor 테스트"""

    def test_output_two_valued_same_size(self, noisy_rgb_array):
        out = ImagePreprocessor().process_array(noisy_rgb_array)
        assert out.shape == noisy_rgb_array.shape
        assert set(np.unique(out).tolist()) <= {0, 255}

    def test_input_not_mutated(self, noisy_rgb_array):
        before = noisy_rgb_array.copy()
        ImagePreprocessor().process_array(noisy_rgb_array)
        assert np.array_equal(noisy_rgb_array, before)

    def test_process_bytes_png(self, text_like_image):
        buf = io.BytesIO()
        text_like_image.save(buf, format="JPEG")
        data = ImagePreprocessor().process_bytes(buf.getvalue())
        assert data[:8] == b'\x89PNG\r\n\x1a\n'
        result = Image.open(io.BytesIO(data))
        assert result.size == (60, 60)
        assert set(np.unique(np.asarray(result)).tolist()) <= {0, 255}

    def test_process_image_rgba(self, sample_rgba_image):
        out = ImagePreprocessor().process_image(sample_rgba_image)
        assert out.mode == "RGB"
        assert out.size == (100, 100)

    def test_process_bytes_undecodable(self):
        with pytest.raises(PreprocessingError):
            ImagePreprocessor().process_bytes(b"\x00\x01\x02")

    def test_disable_binarize(self, noisy_rgb_array):
        pre = ImagePreprocessor(Settings(enable_equalize=False, enable_binarize=False))
        out = pre.process_array(noisy_rgb_array)
        assert np.array_equal(out, to_grayscale(noisy_rgb_array))

    def test_apply_pipeline(self, noisy_rgb_array):
        out = apply_pipeline(
            noisy_rgb_array,
            [(to_luma, {}), (equalize_histogram, {}), (adaptive_binarize, {"block_size": 15})],
        )
        expected = ImagePreprocessor().process_array(noisy_rgb_array)[:, :, 0]
        assert np.array_equal(out, expected)
