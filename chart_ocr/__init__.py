"""chart_ocr - 의료 차트 이미지에서 환자 레코드를 추출하는 OCR 엔진

    이미지 bytes → 전처리 → OCR → 필드/목록 추출 → ExtractedRecord
"""

__version__ = "0.1.0"
