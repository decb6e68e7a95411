"""이미지 처리 유틸리티"""

import io
from pathlib import Path

from PIL import Image

SUPPORTED_FORMATS = {".jpg", ".jpeg", ".png", ".webp", ".bmp", ".tiff", ".tif"}


def validate_image_format(file_path: str | Path) -> bool:
    """지원되는 이미지 형식인지 확인"""
    return Path(file_path).suffix.lower() in SUPPORTED_FORMATS


def read_image_bytes(file_path: str | Path, max_size_mb: int = 10) -> bytes:
    """이미지 파일을 bytes로 읽기 (형식/크기 검사)

    Raises:
        ValueError: 지원하지 않는 형식 또는 크기 초과
        OSError: 파일 읽기 실패
    """
    path = Path(file_path)
    if not validate_image_format(path):
        raise ValueError(f"지원하지 않는 이미지 형식: {path.suffix or '(없음)'}")
    size = path.stat().st_size
    if size > max_size_mb * 1024 * 1024:
        raise ValueError(f"이미지 크기 초과: {size / 1024 / 1024:.1f}MB > {max_size_mb}MB")
    return path.read_bytes()


def image_to_bytes(image: Image.Image, format: str = "PNG") -> bytes:
    """이미지를 바이트로 변환"""
    buffer = io.BytesIO()
    image.save(buffer, format=format)
    return buffer.getvalue()
