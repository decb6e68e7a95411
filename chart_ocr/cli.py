"""chart-ocr 명령행 도구

이미지 한 장에서 환자 레코드를 추출해 camelCase JSON으로 출력합니다.

종료 코드:
    0: 성공
    1: 입력 이미지를 읽을 수 없음
    2: 인식 실패 (RecognitionError)
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from chart_ocr.models.record import ExtractionTrace
from chart_ocr.services.ocr.base import RecognitionError
from chart_ocr.services.ocr.factory import get_ocr_service
from chart_ocr.services.orchestration.record_pipeline import RecordPipeline
from chart_ocr.settings import settings, validate_settings
from chart_ocr.utils.images import read_image_bytes

logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    """루트 로거 설정 (기본값: settings.log_level)"""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="chart-ocr",
        description="의료 차트 이미지에서 환자 이름/ID/생년월일/진단/약물/검사 결과를 추출합니다.",
    )
    p.add_argument("image", type=Path, help="입력 이미지 경로")
    p.add_argument(
        "--provider",
        choices=["tesseract", "paddle", "dummy"],
        default=None,
        help=f"OCR 제공자 (기본값: {settings.ocr_provider})",
    )
    p.add_argument("--lang", default=None, help=f"인식 언어 (기본값: {settings.ocr_lang})")
    p.add_argument(
        "--timeout-s",
        type=float,
        default=None,
        help=f"인식 타임아웃 초 (기본값: {settings.ocr_timeout_s})",
    )
    p.add_argument("--no-preprocess", action="store_true", help="이미지 전처리 생략")
    p.add_argument("--trace", action="store_true", help="추출 결정 기록을 함께 출력")
    p.add_argument("--out", type=Path, default=None, help="결과 JSON 파일 경로 (기본값: stdout)")
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    configure_logging()

    for area, msg in validate_settings().items():
        logger.warning(f"[{area}] {msg}")

    try:
        image_bytes = read_image_bytes(args.image, max_size_mb=settings.max_upload_size_mb)
    except (OSError, ValueError) as e:
        print(f"입력 이미지를 읽을 수 없습니다: {e}", file=sys.stderr)
        return 1

    pipeline = RecordPipeline(
        ocr_service=get_ocr_service(provider=args.provider),
        settings=settings,
    )
    trace = ExtractionTrace() if args.trace else None

    try:
        envelope = pipeline.extract(
            image_bytes,
            lang=args.lang,
            timeout=args.timeout_s,
            do_preprocess=False if args.no_preprocess else None,
            trace=trace,
        )
    except RecognitionError as e:
        print(f"인식 실패: {e}", file=sys.stderr)
        return 2

    payload = {"record": envelope.data.to_dict(), "meta": envelope.meta.model_dump()}
    if trace is not None:
        payload["trace"] = trace.to_list()
    text = json.dumps(payload, ensure_ascii=False, indent=2, default=str)

    if args.out:
        args.out.write_text(text + "\n", encoding="utf-8")
    else:
        print(text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
