"""오케스트레이션 레이어

전처리 → OCR → 추출 파이프라인을 관리합니다.

구성:
- RecordPipeline: 이미지 bytes에서 ExtractedRecord까지 (동기/비동기)
"""

from .record_pipeline import RecordPipeline

__all__ = [
    "RecordPipeline",
]
