"""애플리케이션 설정 관리"""

import shutil
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# .env 파일 로드
load_dotenv()


class Settings(BaseSettings):
    """애플리케이션 설정"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # OCR 설정
    ocr_provider: Literal["tesseract", "paddle", "dummy"] = Field(
        default="tesseract", description="OCR 제공자 (tesseract | paddle | dummy)"
    )
    ocr_lang: str = Field(default="eng", description="OCR 인식 언어 태그")
    ocr_timeout_s: Optional[float] = Field(
        default=60.0, description="인식기 호출 타임아웃 (초, None이면 무제한)"
    )
    tesseract_cmd: Optional[str] = Field(
        default=None, description="tesseract 실행 파일 경로 (PATH에 없을 때)"
    )
    tesseract_config: str = Field(
        default="--oem 3 --psm 6", description="tesseract 추가 옵션"
    )

    # 전처리 설정
    preprocess_enabled: bool = Field(default=True, description="이미지 전처리 사용 여부")
    binarize_block_size: int = Field(default=15, description="적응형 이진화 윈도우 크기 (홀수)")
    binarize_offset: int = Field(default=10, description="적응형 이진화 임계값 오프셋")

    # 공간 추출 설정
    spatial_min_confidence: float = Field(default=60.0, description="공간 추출 최소 신뢰도 (0~100)")
    vertical_x_tolerance: int = Field(default=50, description="세로 라벨/값 쌍의 x 허용 오차 (px)")
    horizontal_max_gap: int = Field(default=300, description="가로 라벨 우측 탐색 범위 (px)")
    horizontal_y_tolerance: int = Field(default=20, description="가로 라벨/값 y 허용 오차 (px)")

    # 앱 설정
    log_level: str = Field(default="INFO", description="로그 레벨")
    max_upload_size_mb: int = Field(default=10, description="최대 업로드 크기 (MB)")


# 전역 설정 인스턴스
settings = Settings()


def validate_settings() -> dict[str, str]:
    """설정 유효성 검사 및 경고 메시지 반환"""
    warnings = {}

    # OCR 설정 검증
    if settings.ocr_provider == "tesseract":
        cmd = settings.tesseract_cmd or "tesseract"
        if settings.tesseract_cmd and not Path(settings.tesseract_cmd).exists():
            warnings["ocr"] = f"tesseract 실행 파일을 찾을 수 없습니다: {settings.tesseract_cmd}"
        elif shutil.which(cmd) is None:
            warnings["ocr"] = (
                "tesseract 바이너리가 PATH에 없습니다. "
                "TESSERACT_CMD 환경변수로 경로를 지정하세요."
            )

    # 전처리 설정 검증
    if settings.binarize_block_size <= 0 or settings.binarize_block_size % 2 == 0:
        warnings["preprocess"] = (
            f"binarize_block_size는 양의 홀수여야 합니다: {settings.binarize_block_size}"
        )

    if not 0 <= settings.spatial_min_confidence <= 100:
        warnings["extraction"] = (
            f"spatial_min_confidence는 0~100 범위여야 합니다: {settings.spatial_min_confidence}"
        )

    return warnings
