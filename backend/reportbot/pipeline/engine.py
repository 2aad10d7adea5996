from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Protocol

from reportbot.core.config import PipelineSettings
from reportbot.core.logger import log_event
from reportbot.core.state import PipelineState
from reportbot.pipeline.composer import ReportComposer
from reportbot.pipeline.errors import RenderError, ReportBotError, TranscriptionError
from reportbot.pipeline.extractor import RecordExtractor
from reportbot.pipeline.models import (
    ExtractionFailure,
    PipelineResult,
    RenderedDocument,
    SegmentOutcome,
    StudentRecord,
    Submission,
)
from reportbot.pipeline.segmenter import segment_transcript
from reportbot.system_metrics import increment_metric, observe_pipeline_latency_ms, record_segment_skip

logger = logging.getLogger("reportbot.pipeline.engine")


class Transcriber(Protocol):
    async def transcribe(self, audio: bytes, *, filename: str, language: str) -> str:
        ...


class CompletionClient(Protocol):
    async def complete(self, prompt: str, *, temperature: float) -> str:
        ...


class Renderer(Protocol):
    def render(self, record: StudentRecord, narrative: str) -> RenderedDocument:
        ...


class Reporter(Protocol):
    async def notify(self, destination: str, text: str) -> None:
        ...

    async def deliver(self, destination: str, document: RenderedDocument) -> None:
        ...


class _SegmentSkipped(Exception):
    def __init__(self, stage: str, message: str, notice: str = ""):
        self.stage = stage
        self.message = message
        self.notice = notice
        super().__init__(message)


class ReportPipeline:
    """
    Voice note in, one rendered report per pupil out.

    Segments run one after another in transcript order. A failure inside a
    segment is reported to the submitter and the loop moves on; only a
    transcription failure stops the whole submission.
    """

    def __init__(
        self,
        transcriber: Transcriber,
        extractor: RecordExtractor,
        composer: ReportComposer,
        renderer: Renderer,
        reporter: Reporter | None = None,
        *,
        settings: PipelineSettings | None = None,
    ):
        self.transcriber = transcriber
        self.extractor = extractor
        self.composer = composer
        self.renderer = renderer
        self.reporter = reporter
        self.settings = settings or PipelineSettings()

    async def run(self, submission: Submission, reporter: Reporter | None = None) -> PipelineResult:
        reporter = reporter or self.reporter
        session_id = uuid.uuid4().hex[:12]
        started = time.perf_counter()
        increment_metric("submissions_total")
        log_event("pipeline", PipelineState.RECEIVED.value, session_id, audio_bytes=len(submission.audio or b""))

        try:
            transcript = await self.transcriber.transcribe(
                submission.audio,
                filename=submission.filename,
                language=submission.language or self.settings.transcribe_language,
            )
        except TranscriptionError as exc:
            logger.warning("transcription failed | session=%s err=%s", session_id, exc)
            return await self._transcription_failed(reporter, submission.destination, str(exc))
        except Exception as exc:
            logger.exception("unexpected transcriber failure | session=%s", session_id)
            return await self._transcription_failed(reporter, submission.destination, str(exc) or exc.__class__.__name__)

        log_event("pipeline", PipelineState.TRANSCRIBED.value, session_id, transcript=transcript)

        segments = segment_transcript(
            transcript,
            min_length=self.settings.segment_min_length,
            preserve_case=self.settings.segment_preserve_case,
        )
        log_event("pipeline", PipelineState.SEGMENTED.value, session_id, segment_count=len(segments))

        if not segments:
            increment_metric("no_student_submissions")
            await self._notify(reporter, submission.destination, "No students found in that voice note.")
            return PipelineResult(status="no_students", transcript=transcript)

        increment_metric("students_found", len(segments))
        noun = "student" if len(segments) == 1 else "students"
        await self._notify(
            reporter,
            submission.destination,
            f"Found {len(segments)} {noun}. Generating reports...",
        )

        result = PipelineResult(status="completed", transcript=transcript, segments=list(segments))
        for index, segment in enumerate(segments, start=1):
            outcome = await self._process_segment(index, segment, submission.destination, reporter, session_id)
            result.outcomes.append(outcome)

        summary = f"Done: {result.rendered_count} report(s) sent"
        if result.skipped_count:
            summary += f", {result.skipped_count} skipped"
        await self._notify(reporter, submission.destination, summary + ".")

        elapsed_ms = (time.perf_counter() - started) * 1000.0
        observe_pipeline_latency_ms(elapsed_ms)
        log_event(
            "pipeline",
            PipelineState.COMPLETED.value,
            session_id,
            rendered=result.rendered_count,
            skipped=result.skipped_count,
            elapsed_ms=round(elapsed_ms, 1),
        )
        return result

    async def _process_segment(
        self,
        index: int,
        segment: str,
        destination: str,
        reporter: Reporter | None,
        session_id: str,
    ) -> SegmentOutcome:
        outcome = SegmentOutcome(index=index, status="skipped")
        try:
            log_event("pipeline", PipelineState.EXTRACTING.value, session_id, segment_index=index, segment=segment)
            record = await self._run_stage("extract", self.extractor.extract(segment, index, session_id=session_id))
            if isinstance(record, ExtractionFailure):
                error = record.to_error()
                raise _SegmentSkipped("extract", record.detail or record.reason, notice=str(error))
            outcome.record = record
            log_event("pipeline", PipelineState.EXTRACTED.value, session_id, segment_index=index)

            if self.settings.suggest_subject_comments:
                record = await self._run_stage("compose", self.composer.suggest_subject_comments(record))
                outcome.record = record

            log_event("pipeline", PipelineState.COMPOSING.value, session_id, segment_index=index)
            narrative = await self._run_stage("compose", self.composer.compose(record))
            outcome.narrative = narrative
            log_event("pipeline", PipelineState.COMPOSED.value, session_id, segment_index=index, narrative=narrative)

            document = await self._run_stage("render", self._render(record, narrative))
            outcome.document = document
            log_event("pipeline", PipelineState.RENDERED.value, session_id, segment_index=index, bytes=len(document.content))

            if reporter is not None:
                await self._run_stage("deliver", reporter.deliver(destination, document))
        except _SegmentSkipped as skipped:
            outcome.stage = skipped.stage
            outcome.error = skipped.message
            outcome.document = None
            record_segment_skip(skipped.stage)
            logger.warning("student %s skipped | stage=%s err=%s", index, skipped.stage, skipped.message)
            notice = skipped.notice or f"Could not process student {index}: {skipped.message}"
            await self._notify(reporter, destination, notice)
            return outcome

        outcome.status = "rendered"
        increment_metric("students_rendered")
        return outcome

    async def _transcription_failed(self, reporter: Reporter | None, destination: str, error: str) -> PipelineResult:
        increment_metric("transcription_failures")
        await self._notify(reporter, destination, f"Sorry, I could not transcribe that voice note: {error}")
        return PipelineResult(status="transcription_failed", error=error)

    async def _render(self, record: StudentRecord, narrative: str) -> RenderedDocument:
        # reportlab and python-docx are blocking; keep them off the event loop.
        timeout = self.settings.render_timeout_sec
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.renderer.render, record, narrative),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            raise RenderError(f"rendering timed out after {timeout:g}s") from exc

    async def _run_stage(self, stage: str, awaitable):
        try:
            return await awaitable
        except ReportBotError as exc:
            raise _SegmentSkipped(stage, str(exc)) from exc
        except Exception as exc:
            logger.exception("unexpected failure in %s stage", stage)
            raise _SegmentSkipped(stage, str(exc) or exc.__class__.__name__) from exc

    async def _notify(self, reporter: Reporter | None, destination: str, text: str) -> None:
        if reporter is None:
            return
        try:
            await reporter.notify(destination, text)
        except Exception as exc:
            logger.warning("notify failed | destination=%s err=%s", destination, exc)
