"""
이미지 전처리 모듈

OCR 수행 전 스캔/촬영 이미지를 인식기에 맞게 정리합니다.
입력 이미지는 변경하지 않으며, 모든 단계가 새 배열을 반환합니다.

파이프라인:
    0) 로드 + EXIF 회전 교정 → 투명 채널 플래튼 → RGB 모드 통일
    1) 그레이스케일: luma = 0.299R + 0.587G + 0.114B
    2) 히스토그램 평활화: 누적분포(cdf) 기반 재매핑
    3) 적응형 이진화: 적분 영상(summed-area table)으로 15x15 윈도우 평균을 O(1)에 계산,
       threshold = 평균 - 10, 픽셀 > threshold 이면 255 아니면 0
    4) PNG 무손실 저장

픽셀 단위 연산은 모두 numpy 벡터 연산으로 처리합니다.
(각 픽셀 출력은 읽기 전용 입력과 미리 계산된 누적 테이블에만 의존)
"""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Callable, Sequence, Tuple

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

LUMA_WEIGHTS = (0.299, 0.587, 0.114)


class PreprocessingError(ValueError):
    """디코딩 불가 / 크기 0 이미지 등 전처리 전제조건 위반"""


# =============================================================================
# 로드 / 저장
# =============================================================================

def open_with_exif(img_bytes: bytes) -> Image.Image:
    """로드 + EXIF 회전 교정: 카메라 회전 정보가 있으면 실제 픽셀을 회전"""
    if not img_bytes:
        raise PreprocessingError("빈 이미지 데이터")
    try:
        img = Image.open(io.BytesIO(img_bytes))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise PreprocessingError(f"이미지 디코딩 실패: {e}") from e
    try:
        img = ImageOps.exif_transpose(img)
    except Exception as e:
        logger.debug(f"EXIF 회전 교정 생략: {e}")
    return img


def flatten_transparency(img: Image.Image) -> Image.Image:
    """투명 채널 플래튼: RGBA/LA → 흰 배경 위에 합성"""
    if img.mode in ("RGBA", "LA"):
        bg = Image.new("RGB", img.size, (255, 255, 255))
        alpha = img.split()[-1]
        return Image.composite(img.convert("RGB"), bg, alpha)
    if img.mode == "P" and "transparency" in img.info:
        return flatten_transparency(img.convert("RGBA"))
    return img


def normalize_mode(img: Image.Image) -> Image.Image:
    """모드 통일: 픽셀 버퍼는 항상 RGB 3채널"""
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def save_png_bytes(img: Image.Image, compress_level: int = 6) -> bytes:
    """PNG 저장(무손실): 이진화 결과 보존"""
    buf = io.BytesIO()
    img.save(buf, format="PNG", compress_level=compress_level)
    return buf.getvalue()


# =============================================================================
# 픽셀 연산
# =============================================================================

def _check_dimensions(arr: np.ndarray) -> Tuple[int, int]:
    if arr.ndim not in (2, 3) or arr.shape[0] == 0 or arr.shape[1] == 0:
        raise PreprocessingError(f"잘못된 이미지 크기: {arr.shape}")
    return arr.shape[0], arr.shape[1]


def to_luma(arr: np.ndarray) -> np.ndarray:
    """RGB (H,W,3) → luma (H,W) uint8. 이미 단일 채널이면 복사본 반환."""
    _check_dimensions(arr)
    if arr.ndim == 2:
        return arr.astype(np.uint8, copy=True)
    rgb = arr[:, :, :3].astype(np.float64)
    r, g, b = LUMA_WEIGHTS
    luma = rgb[:, :, 0] * r + rgb[:, :, 1] * g + rgb[:, :, 2] * b
    return np.clip(np.floor(luma + 0.5), 0, 255).astype(np.uint8)


def to_grayscale(arr: np.ndarray) -> np.ndarray:
    """그레이스케일: R,G,B 모두 luma로 대체한 (H,W,3) 배열"""
    return replicate_channels(to_luma(arr))


def replicate_channels(luma: np.ndarray) -> np.ndarray:
    return np.repeat(luma[:, :, np.newaxis], 3, axis=2)


def equalize_histogram(luma: np.ndarray) -> np.ndarray:
    """히스토그램 평활화

    cdf_min = 첫 번째 0이 아닌 누적값,
    v → round((cdf[v] - cdf_min) / (total - cdf_min) * 255)

    단일 값 이미지(total == cdf_min)는 그대로 반환합니다.
    """
    _check_dimensions(luma)
    hist = np.bincount(luma.ravel(), minlength=256)
    cdf = np.cumsum(hist)
    total = int(luma.size)
    cdf_min = int(cdf[np.flatnonzero(cdf)[0]])
    if total == cdf_min:
        return luma.copy()
    scaled = (cdf - cdf_min) / float(total - cdf_min) * 255.0
    lut = np.clip(np.floor(scaled + 0.5), 0, 255).astype(np.uint8)
    return lut[luma]


def integral_image(luma: np.ndarray) -> np.ndarray:
    """적분 영상 (H+1, W+1): sat[y, x] = luma[:y, :x] 합"""
    h, w = _check_dimensions(luma)
    sat = np.zeros((h + 1, w + 1), dtype=np.int64)
    sat[1:, 1:] = luma.astype(np.int64).cumsum(axis=0).cumsum(axis=1)
    return sat


def adaptive_binarize(luma: np.ndarray, block_size: int = 15, offset: float = 10) -> np.ndarray:
    """적응형 이진화 (적분 영상 기반 지역 평균)

    각 픽셀 중심의 block_size x block_size 윈도우(가장자리에서 잘림) 평균을 구해
    threshold = 평균 - offset, 픽셀 > threshold 이면 255, 아니면 0.

    Returns:
        (H, W) uint8, 값은 0 또는 255
    """
    if block_size <= 0 or block_size % 2 == 0:
        raise PreprocessingError(f"block_size는 양의 홀수여야 합니다: {block_size}")
    h, w = _check_dimensions(luma)
    sat = integral_image(luma)
    half = block_size // 2

    ys = np.arange(h)
    xs = np.arange(w)
    y0 = np.clip(ys - half, 0, h)
    y1 = np.clip(ys + half + 1, 0, h)
    x0 = np.clip(xs - half, 0, w)
    x1 = np.clip(xs + half + 1, 0, w)

    sums = (
        sat[np.ix_(y1, x1)]
        - sat[np.ix_(y0, x1)]
        - sat[np.ix_(y1, x0)]
        + sat[np.ix_(y0, x0)]
    )
    counts = (y1 - y0)[:, np.newaxis] * (x1 - x0)[np.newaxis, :]
    threshold = sums / counts - offset
    return np.where(luma > threshold, 255, 0).astype(np.uint8)


def apply_pipeline(arr: np.ndarray, steps: Sequence[Tuple[Callable, dict]]) -> np.ndarray:
    """체이닝 실행 유틸. [(func, kwargs), ...] 형태로 전달된 스텝을 순서대로 적용."""
    for func, kwargs in steps:
        arr = func(arr, **kwargs)
    return arr


# =============================================================================
# 클래스 기반 API
# =============================================================================

@dataclass
class Settings:
    """이미지 전처리 설정값

    - block_size: 적응형 이진화 윈도우 크기 (홀수)
    - offset: 지역 평균에서 뺄 임계값 오프셋
    - enable_equalize: 히스토그램 평활화 사용 여부
    - enable_binarize: 적응형 이진화 사용 여부
    - debug: 단계별 로그를 INFO로 출력
    """
    block_size: int = 15
    offset: float = 10
    enable_equalize: bool = True
    enable_binarize: bool = True
    debug: bool = False


class ImagePreprocessor:
    """OCR 전처리기

    사용 예시:
        >>> pre = ImagePreprocessor(Settings(block_size=15, offset=10))
        >>> png_bytes = pre.process_bytes(raw_bytes)
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()

    def _log(self, msg: str) -> None:
        if self.settings.debug:
            logger.info(msg)
        else:
            logger.debug(msg)

    def process_array(self, arr: np.ndarray) -> np.ndarray:
        """(H,W,3) 또는 (H,W) 배열 → 이진화된 (H,W,3) uint8 배열 (입력 불변)"""
        luma = to_luma(arr)
        self._log(f"[preprocess] grayscale 완료 → {luma.shape[1]}x{luma.shape[0]}")
        if self.settings.enable_equalize:
            luma = equalize_histogram(luma)
            self._log("[preprocess] histogram equalization 완료")
        if self.settings.enable_binarize:
            luma = adaptive_binarize(luma, self.settings.block_size, self.settings.offset)
            self._log(
                f"[preprocess] adaptive binarize 완료 "
                f"(block={self.settings.block_size}, offset={self.settings.offset})"
            )
        return replicate_channels(luma)

    def process_image(self, img: Image.Image) -> Image.Image:
        """PIL Image → 전처리된 RGB PIL Image"""
        if img.width == 0 or img.height == 0:
            raise PreprocessingError(f"잘못된 이미지 크기: {img.size}")
        img = normalize_mode(flatten_transparency(img))
        out = self.process_array(np.asarray(img))
        return Image.fromarray(out)

    def process_bytes(self, img_bytes: bytes) -> bytes:
        """이미지 bytes → 전처리된 PNG bytes

        Raises:
            PreprocessingError: 디코딩 불가 또는 크기 0 이미지
        """
        img = open_with_exif(img_bytes)
        processed = self.process_image(img)
        data = save_png_bytes(processed)
        self._log(f"[preprocess] PNG 저장 완료 ({len(data)} bytes)")
        return data


__all__ = [
    "PreprocessingError",
    "open_with_exif",
    "flatten_transparency",
    "normalize_mode",
    "save_png_bytes",
    "to_luma",
    "to_grayscale",
    "replicate_channels",
    "equalize_histogram",
    "integral_image",
    "adaptive_binarize",
    "apply_pipeline",
    "Settings",
    "ImagePreprocessor",
]
