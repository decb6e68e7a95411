"""
차트 이미지 → 환자 레코드 추출 파이프라인

단계:
    1) preprocess: ImagePreprocessor.process_bytes (실패 시 원본 bytes로 계속)
    2) ocr: BaseOCRService.recognize (실패 시 전처리본을 썼다면 원본으로 1회 재시도)
    3) extract: 필드별 공간 추출 → 텍스트 추출 폴백 → sentinel, 약물/검사 목록

- 스트리밍/콜백 지원: 각 단계의 진행 상황을 이벤트(dict)로 외부에 알림
  이벤트 공통 필드 예: {
    'stage': 'preprocess' | 'ocr' | 'extract',
    'status': 'start' | 'end' | 'error' | 'retry',
    'ts': <epoch_seconds>,
    ... (추가 메타데이터)
  }

- 인식 결과(RecognizedDocument)는 호출 인자로만 전달합니다 (모듈 전역 캐시 없음).
- aextract에서 인식기 호출은 워커 스레드에서 실행되며, 그 대기가 유일한 중단 지점입니다.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

from chart_ocr.models.envelopes import (
    ExtractionMeta,
    FieldSource,
    OCRResultEnvelope,
    RecognizedDocument,
)
from chart_ocr.models.record import ExtractedRecord, ExtractionEnvelope, ExtractionTrace
from chart_ocr.services.extraction.field_specs import FIELD_SPECS
from chart_ocr.services.extraction.section_extractor import extract_lab_results, extract_medications
from chart_ocr.services.extraction.spatial_extractor import SpatialTolerances, extract_field_spatially
from chart_ocr.services.extraction.text_cleanup import clean_document
from chart_ocr.services.extraction.text_extractor import extract_field
from chart_ocr.services.ocr.base import BaseOCRService, RecognitionError
from chart_ocr.services.preprocessing.image_preprocessor import (
    ImagePreprocessor,
    PreprocessingError,
    Settings as PreprocessSettings,
)
from chart_ocr.settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)

Event = Dict[str, Any]
ProgressCB = Optional[Callable[[Event], None]]


class RecordPipeline:
    """3단계 추출 파이프라인

    의존성은 생성자 주입으로 전달합니다. 값이 None이면 settings로 기본 구성을 만듭니다.
    - preprocessor: ImagePreprocessor (block_size/offset은 settings 값)
    - ocr_service: get_ocr_service(config=settings)

    사용 예시:
        >>> pipeline = RecordPipeline()
        >>> envelope = pipeline.extract(image_bytes)
        >>> envelope.data.to_dict()["patientName"]
    """

    def __init__(
        self,
        *,
        preprocessor: Optional[ImagePreprocessor] = None,
        ocr_service: Optional[BaseOCRService] = None,
        settings: Optional[Settings] = None,
        progress_cb: ProgressCB = None,
    ) -> None:
        self.settings = settings or default_settings

        if preprocessor is None:
            preprocessor = ImagePreprocessor(
                PreprocessSettings(
                    block_size=self.settings.binarize_block_size,
                    offset=self.settings.binarize_offset,
                )
            )
        if ocr_service is None:
            from chart_ocr.services.ocr.factory import get_ocr_service

            ocr_service = get_ocr_service(config=self.settings)

        self.preprocessor = preprocessor
        self.ocr_service = ocr_service
        self.do_preprocess_default = self.settings.preprocess_enabled
        self.min_confidence = self.settings.spatial_min_confidence
        self.tolerances = SpatialTolerances(
            vertical_x=self.settings.vertical_x_tolerance,
            horizontal_gap=self.settings.horizontal_max_gap,
            horizontal_y=self.settings.horizontal_y_tolerance,
        )
        self._progress_cb = progress_cb

    # ---------- 내부 유틸 ----------
    @staticmethod
    def _ts() -> float:
        return time.time()

    def _emit(self, event: Event, progress_cb: ProgressCB = None) -> None:
        cb = progress_cb or self._progress_cb
        if cb:
            try:
                cb(event)
            except Exception as e:
                # 콜백 오류는 파이프라인을 중단시키지 않음
                logger.debug(f"progress 콜백 오류 무시: {e}")

    # ---------- 1) 전처리 ----------
    def _preprocess(
        self,
        image_bytes: bytes,
        do_preprocess: Optional[bool],
        trace: Optional[ExtractionTrace],
        progress_cb: ProgressCB,
    ) -> Tuple[bytes, bool]:
        """(인식에 쓸 bytes, 전처리 적용 여부)"""
        use_pre = self.do_preprocess_default if do_preprocess is None else bool(do_preprocess)
        if not use_pre or self.preprocessor is None:
            return image_bytes, False

        self._emit({'stage': 'preprocess', 'status': 'start', 'ts': self._ts()}, progress_cb)
        try:
            data = self.preprocessor.process_bytes(image_bytes)
        except PreprocessingError as e:
            logger.warning(f"전처리 실패, 원본 이미지로 계속 진행: {e}")
            if trace is not None:
                trace.record("preprocess", "전처리 실패 → 원본 사용", error=str(e))
            self._emit({'stage': 'preprocess', 'status': 'error', 'ts': self._ts(), 'error': str(e)}, progress_cb)
            return image_bytes, False

        self._emit({'stage': 'preprocess', 'status': 'end', 'ts': self._ts(), 'bytes': len(data)}, progress_cb)
        return data, True

    # ---------- 2) 인식 ----------
    def _recognize_once(
        self,
        data: bytes,
        lang: Optional[str],
        timeout: Optional[float],
    ) -> OCRResultEnvelope:
        try:
            return self.ocr_service.recognize(data, lang=lang, timeout=timeout)
        except RecognitionError:
            raise
        except Exception as e:
            raise RecognitionError(f"인식기 실행 실패: {e}") from e

    async def _arecognize_once(
        self,
        data: bytes,
        lang: Optional[str],
        timeout: Optional[float],
    ) -> OCRResultEnvelope:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._recognize_once, data, lang, timeout),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise RecognitionError(f"인식 타임아웃 ({timeout}s)") from e

    def _on_recognition_failure(
        self,
        error: RecognitionError,
        preprocessed: bool,
        trace: Optional[ExtractionTrace],
        progress_cb: ProgressCB,
    ) -> None:
        """재시도 불가면 에러 전파, 가능하면 기록만 남김"""
        self._emit({'stage': 'ocr', 'status': 'error', 'ts': self._ts(), 'error': str(error)}, progress_cb)
        if trace is not None:
            trace.record("ocr", "인식 실패", error=str(error), preprocessed=preprocessed)
        if not preprocessed:
            logger.error(f"인식 실패: {error}")
            raise error
        logger.warning(f"전처리 이미지 인식 실패, 원본 이미지로 재시도: {error}")
        self._emit({'stage': 'ocr', 'status': 'retry', 'ts': self._ts()}, progress_cb)

    def _ocr_end(self, envelope: OCRResultEnvelope, attempts: int, progress_cb: ProgressCB) -> None:
        self._emit(
            {
                'stage': 'ocr', 'status': 'end', 'ts': self._ts(),
                'attempts': attempts,
                'lines': envelope.meta.lines,
                'words': envelope.meta.words,
            },
            progress_cb,
        )

    def _recognize_with_retry(
        self,
        raw: bytes,
        data: bytes,
        preprocessed: bool,
        lang: Optional[str],
        timeout: Optional[float],
        trace: Optional[ExtractionTrace],
        progress_cb: ProgressCB,
    ) -> Tuple[OCRResultEnvelope, int, bool]:
        """(인식 결과, 시도 횟수, 최종 결과가 전처리본인지)"""
        self._emit({'stage': 'ocr', 'status': 'start', 'ts': self._ts()}, progress_cb)
        try:
            envelope = self._recognize_once(data, lang, timeout)
            self._ocr_end(envelope, 1, progress_cb)
            return envelope, 1, preprocessed
        except RecognitionError as e:
            self._on_recognition_failure(e, preprocessed, trace, progress_cb)

        envelope = self._recognize_once(raw, lang, timeout)
        self._ocr_end(envelope, 2, progress_cb)
        return envelope, 2, False

    async def _arecognize_with_retry(
        self,
        raw: bytes,
        data: bytes,
        preprocessed: bool,
        lang: Optional[str],
        timeout: Optional[float],
        trace: Optional[ExtractionTrace],
        progress_cb: ProgressCB,
    ) -> Tuple[OCRResultEnvelope, int, bool]:
        self._emit({'stage': 'ocr', 'status': 'start', 'ts': self._ts()}, progress_cb)
        try:
            envelope = await self._arecognize_once(data, lang, timeout)
            self._ocr_end(envelope, 1, progress_cb)
            return envelope, 1, preprocessed
        except RecognitionError as e:
            self._on_recognition_failure(e, preprocessed, trace, progress_cb)

        envelope = await self._arecognize_once(raw, lang, timeout)
        self._ocr_end(envelope, 2, progress_cb)
        return envelope, 2, False

    # ---------- 3) 추출 ----------
    def extract_from_document(
        self,
        document: RecognizedDocument,
        *,
        engine: Optional[str] = None,
        trace: Optional[ExtractionTrace] = None,
        progress_cb: ProgressCB = None,
    ) -> ExtractionEnvelope:
        """인식 결과 문서 → 레코드

        필드마다 공간 추출을 먼저 시도하고, 실패하면 정리된 텍스트에서 추출,
        그래도 없으면 필드의 sentinel 값을 씁니다.
        """
        self._emit({'stage': 'extract', 'status': 'start', 'ts': self._ts()}, progress_cb)
        # 공간/텍스트 경로 모두 보정된 문서 사용
        document = clean_document(document)
        cleaned = document.text

        values: Dict[str, str] = {}
        sources: Dict[str, FieldSource] = {}
        for spec in FIELD_SPECS:
            value = extract_field_spatially(
                document,
                spec,
                min_confidence=self.min_confidence,
                tolerances=self.tolerances,
                trace=trace,
            )
            source: FieldSource = "spatial"
            if not value:
                value = extract_field(cleaned, spec, trace=trace)
                source = "text"
            if not value:
                value = spec.unknown
                source = "unknown"
            values[spec.key] = value
            sources[spec.key] = source
            if trace is not None:
                trace.record("record", "필드 확정", field=spec.key, source=source, value=value)

        medications = extract_medications(cleaned, trace=trace)
        lab_results = extract_lab_results(cleaned, trace=trace)

        record = ExtractedRecord(
            patient_name=values["patientName"],
            patient_id=values["patientId"],
            date_of_birth=values["dateOfBirth"],
            diagnosis=values["diagnosis"],
            medications=tuple(medications),
            lab_results=tuple(lab_results),
            raw_text=cleaned,
        )
        meta = ExtractionMeta(
            engine=engine,
            ocr_confidence=document.confidence if document.has_spatial_data else None,
            field_sources=sources,
            medications=len(medications),
            lab_results=len(lab_results),
        )
        logger.info(
            f"레코드 추출 완료: fields={sources}, "
            f"medications={len(medications)}, lab_results={len(lab_results)}"
        )
        self._emit(
            {
                'stage': 'extract', 'status': 'end', 'ts': self._ts(),
                'medications': len(medications), 'lab_results': len(lab_results),
            },
            progress_cb,
        )
        return ExtractionEnvelope(stage='extract', data=record, meta=meta)

    def extract_from_text(
        self,
        text: str,
        *,
        trace: Optional[ExtractionTrace] = None,
        progress_cb: ProgressCB = None,
    ) -> ExtractionEnvelope:
        """공간 데이터 없는 텍스트 전용 경로"""
        return self.extract_from_document(
            RecognizedDocument(text=text or ""), trace=trace, progress_cb=progress_cb
        )

    def _finish(
        self,
        ocr_envelope: OCRResultEnvelope,
        attempts: int,
        preprocessed: bool,
        trace: Optional[ExtractionTrace],
        progress_cb: ProgressCB,
    ) -> ExtractionEnvelope:
        result = self.extract_from_document(
            ocr_envelope.data,
            engine=ocr_envelope.meta.engine,
            trace=trace,
            progress_cb=progress_cb,
        )
        meta = result.meta.model_copy(
            update={'preprocessed': preprocessed, 'recognition_attempts': attempts}
        )
        return result.model_copy(update={'meta': meta})

    # ---------- 진입점 ----------
    def extract(
        self,
        image_bytes: bytes,
        *,
        lang: Optional[str] = None,
        timeout: Optional[float] = None,
        do_preprocess: Optional[bool] = None,
        trace: Optional[ExtractionTrace] = None,
        progress_cb: ProgressCB = None,
    ) -> ExtractionEnvelope:
        """이미지 bytes → ExtractionEnvelope

        Raises:
            RecognitionError: 재시도 후에도 인식 실패
        """
        timeout = self.settings.ocr_timeout_s if timeout is None else timeout
        data, preprocessed = self._preprocess(image_bytes, do_preprocess, trace, progress_cb)
        ocr_envelope, attempts, used_processed = self._recognize_with_retry(
            image_bytes, data, preprocessed, lang, timeout, trace, progress_cb
        )
        return self._finish(ocr_envelope, attempts, used_processed, trace, progress_cb)

    async def aextract(
        self,
        image_bytes: bytes,
        *,
        lang: Optional[str] = None,
        timeout: Optional[float] = None,
        do_preprocess: Optional[bool] = None,
        trace: Optional[ExtractionTrace] = None,
        progress_cb: ProgressCB = None,
    ) -> ExtractionEnvelope:
        """extract의 비동기 버전 (인식기 호출만 워커 스레드에서 대기)"""
        timeout = self.settings.ocr_timeout_s if timeout is None else timeout
        data, preprocessed = self._preprocess(image_bytes, do_preprocess, trace, progress_cb)
        ocr_envelope, attempts, used_processed = await self._arecognize_with_retry(
            image_bytes, data, preprocessed, lang, timeout, trace, progress_cb
        )
        return self._finish(ocr_envelope, attempts, used_processed, trace, progress_cb)


__all__ = ["RecordPipeline", "ProgressCB"]
