"""이미지 전처리 패키지
OCR 수행 전 이미지 품질 개선을 위한 전처리 기능을 제공합니다.
주요 모듈:
- image_preprocessor: 이미지 전처리 (그레이스케일, 히스토그램 평활화, 적응형 이진화)
"""
from .image_preprocessor import (
    ImagePreprocessor,
    PreprocessingError,
    Settings,
    # 로드/저장
    open_with_exif,
    save_png_bytes,
    # 기본 변환
    flatten_transparency,
    normalize_mode,
    to_grayscale,
    # 대비/이진화
    equalize_histogram,
    integral_image,
    adaptive_binarize,
)
__all__ = [
    "ImagePreprocessor",
    "PreprocessingError",
    "Settings",
    "open_with_exif",
    "save_png_bytes",
    "flatten_transparency",
    "normalize_mode",
    "to_grayscale",
    "equalize_histogram",
    "integral_image",
    "adaptive_binarize",
]
