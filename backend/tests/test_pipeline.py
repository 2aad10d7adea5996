import asyncio
import json
import time

import pytest

from reportbot.core.config import PipelineSettings
from reportbot.pipeline.composer import ReportComposer
from reportbot.pipeline.engine import ReportPipeline
from reportbot.pipeline.errors import CompletionError, DeliveryError, RenderError, TranscriptionError
from reportbot.pipeline.extractor import RecordExtractor
from reportbot.pipeline.models import RenderedDocument, Submission
from reportbot.services.collecting_reporter import CollectingReporter
from reportbot.system_metrics import get_metrics_snapshot


class FakeTranscriber:
    def __init__(self, transcript: str = "", error: Exception | None = None):
        self.transcript = transcript
        self.error = error
        self.calls = []

    async def transcribe(self, audio: bytes, *, filename: str, language: str) -> str:
        self.calls.append({"filename": filename, "language": language})
        if self.error:
            raise self.error
        return self.transcript


class FakeRenderer:
    def __init__(self, fail_for: str = ""):
        self.fail_for = fail_for
        self.rendered = []

    def render(self, record, narrative):
        if record.student_name == self.fail_for:
            raise RenderError("PDF rendering failed: bad font")
        self.rendered.append(record.student_name)
        return RenderedDocument(
            content=f"{record.student_name}|{narrative}".encode("utf-8"),
            filename=f"{record.student_name}_report.pdf",
            media_type="application/pdf",
            caption=f"Report for {record.student_name}",
        )


class FailingDeliveryReporter(CollectingReporter):
    async def deliver(self, destination, document):
        if document.filename.startswith("Ben"):
            raise DeliveryError("Telegram sendDocument rejected: file too big")
        await super().deliver(destination, document)


def _extraction(name: str, **scores) -> str:
    return json.dumps({"student_name": name, "scores": scores, "subject_comments": {}, "teacher_notes": "Kind to others."})


class RoutingCompletion:
    """Answers extraction prompts from a per-pupil table and report prompts with a short narrative."""

    def __init__(self, extractions: dict, narrative_errors: dict | None = None):
        self.extractions = extractions
        self.narrative_errors = narrative_errors or {}
        self.prompts = []

    async def complete(self, prompt: str, *, temperature: float) -> str:
        self.prompts.append(prompt)
        if "British school report for" in prompt:
            for name, error in self.narrative_errors.items():
                if f"report for {name}" in prompt:
                    raise error
            return "A lovely term."
        for key, reply in self.extractions.items():
            if key in prompt:
                return reply
        return ""


def _pipeline(transcriber, completion, renderer=None, reporter=None, settings=None):
    settings = settings or PipelineSettings()
    return ReportPipeline(
        transcriber=transcriber,
        extractor=RecordExtractor(completion),
        composer=ReportComposer(completion),
        renderer=renderer or FakeRenderer(),
        reporter=reporter,
        settings=settings,
    )


@pytest.mark.asyncio
async def test_three_students_rendered_in_spoken_order():
    transcriber = FakeTranscriber("Amy. Maths 6. next student Ben. English 8. Next Student Cara. PE 9.")
    completion = RoutingCompletion(
        {
            "Amy. Maths 6.": _extraction("Amy", Maths=6),
            "Ben. English 8.": _extraction("Ben", English=8),
            "Cara. PE 9.": _extraction("Cara", PE=9),
        }
    )
    reporter = CollectingReporter()
    pipeline = _pipeline(transcriber, completion, reporter=reporter)

    result = await pipeline.run(Submission(audio=b"ogg", destination="chat-1"))

    assert result.status == "completed"
    assert result.segments == ["Amy. Maths 6.", "Ben. English 8.", "Cara. PE 9."]
    assert [d.filename for d in reporter.documents] == ["Amy_report.pdf", "Ben_report.pdf", "Cara_report.pdf"]
    assert reporter.messages[0] == "Found 3 students. Generating reports..."
    assert reporter.messages[-1] == "Done: 3 report(s) sent."
    assert transcriber.calls == [{"filename": "voice.ogg", "language": "en"}]

    metrics = get_metrics_snapshot()
    assert metrics["submissions_total"] == 1
    assert metrics["students_found"] == 3
    assert metrics["students_rendered"] == 3
    assert metrics["pipeline_latency_samples"] == 1


@pytest.mark.asyncio
async def test_one_bad_extraction_does_not_stop_the_others():
    transcriber = FakeTranscriber("Amy. Maths 6. next student mumble mumble next student Cara. PE 9.")
    completion = RoutingCompletion(
        {
            "Amy. Maths 6.": _extraction("Amy", Maths=6),
            "mumble mumble": "I am not sure what you mean.",
            "Cara. PE 9.": _extraction("Cara", PE=9),
        }
    )
    reporter = CollectingReporter()
    result = await _pipeline(transcriber, completion, reporter=reporter).run(Submission(audio=b"ogg", destination="chat-1"))

    assert [o.status for o in result.outcomes] == ["rendered", "skipped", "rendered"]
    assert result.outcomes[1].stage == "extract"
    assert "Could not parse student 2: invalid JSON" in reporter.messages
    assert [d.caption for d in reporter.documents] == ["Report for Amy", "Report for Cara"]
    assert reporter.messages[-1] == "Done: 2 report(s) sent, 1 skipped."

    metrics = get_metrics_snapshot()
    assert metrics["students_skipped"] == 1
    assert metrics["extraction_failures"] == 1


@pytest.mark.asyncio
async def test_compose_render_and_delivery_failures_are_isolated():
    transcriber = FakeTranscriber("Amy. Maths 6. next student Ben. English 8. next student Cara. PE 9. next student Dan. Art 4.")
    completion = RoutingCompletion(
        {
            "Amy. Maths 6.": _extraction("Amy", Maths=6),
            "Ben. English 8.": _extraction("Ben", English=8),
            "Cara. PE 9.": _extraction("Cara", PE=9),
            "Dan. Art 4.": _extraction("Dan", Art=4),
        },
        narrative_errors={"Amy": CompletionError("completion timed out after 30s")},
    )
    reporter = FailingDeliveryReporter()
    pipeline = _pipeline(transcriber, completion, renderer=FakeRenderer(fail_for="Cara"), reporter=reporter)

    result = await pipeline.run(Submission(audio=b"ogg", destination="chat-1"))

    assert [(o.status, o.stage) for o in result.outcomes] == [
        ("skipped", "compose"),
        ("skipped", "deliver"),
        ("skipped", "render"),
        ("rendered", ""),
    ]
    assert [d.filename for d in result.documents] == ["Dan_report.pdf"]
    assert [d.filename for d in reporter.documents] == ["Dan_report.pdf"]
    assert "Could not process student 1: completion timed out after 30s" in reporter.messages
    assert "Could not process student 3: PDF rendering failed: bad font" in reporter.messages
    assert reporter.messages[-1] == "Done: 1 report(s) sent, 3 skipped."

    metrics = get_metrics_snapshot()
    assert metrics["completion_failures"] == 1
    assert metrics["render_failures"] == 1
    assert metrics["delivery_failures"] == 1


@pytest.mark.asyncio
async def test_no_students_found():
    reporter = CollectingReporter()
    pipeline = _pipeline(FakeTranscriber("  next student  "), RoutingCompletion({}), reporter=reporter)

    result = await pipeline.run(Submission(audio=b"ogg", destination="chat-1"))

    assert result.status == "no_students"
    assert result.outcomes == []
    assert reporter.messages == ["No students found in that voice note."]
    assert get_metrics_snapshot()["no_student_submissions"] == 1


@pytest.mark.asyncio
async def test_transcription_failure_stops_the_submission():
    reporter = CollectingReporter()
    completion = RoutingCompletion({})
    pipeline = _pipeline(FakeTranscriber(error=TranscriptionError("transcription timed out after 60s")), completion, reporter=reporter)

    result = await pipeline.run(Submission(audio=b"ogg", destination="chat-1"))

    assert result.status == "transcription_failed"
    assert result.error == "transcription timed out after 60s"
    assert completion.prompts == []
    assert reporter.messages == ["Sorry, I could not transcribe that voice note: transcription timed out after 60s"]


@pytest.mark.asyncio
async def test_run_without_reporter_still_returns_documents():
    transcriber = FakeTranscriber("Amy. Maths 6.")
    completion = RoutingCompletion({"Amy. Maths 6.": _extraction("Amy", Maths=6)})

    result = await _pipeline(transcriber, completion).run(Submission(audio=b"ogg", destination="cli", language="cy"))

    assert result.rendered_count == 1
    assert result.documents[0].content == b"Amy|A lovely term."
    assert transcriber.calls[0]["language"] == "cy"


@pytest.mark.asyncio
async def test_subject_comment_suggestions_run_before_the_narrative():
    transcriber = FakeTranscriber("Amy. Maths 6.")
    completion = RoutingCompletion({"Amy. Maths 6.": _extraction("Amy", Maths=6)})
    settings = PipelineSettings(suggest_subject_comments=True)

    result = await _pipeline(transcriber, completion, settings=settings).run(Submission(audio=b"ogg", destination="cli"))

    # the suggestion prompt gets no JSON back, so the stock comment is used
    assert result.outcomes[0].record.subject_comments == {"Maths": "Continuing to develop"}
    assert "Continuing to develop" in completion.prompts[-1]


@pytest.mark.asyncio
async def test_notify_failure_does_not_abort_the_run():
    class BrokenNotifyReporter(CollectingReporter):
        async def notify(self, destination, text):
            raise DeliveryError("Telegram sendMessage failed: network down")

    reporter = BrokenNotifyReporter()
    transcriber = FakeTranscriber("Amy. Maths 6.")
    completion = RoutingCompletion({"Amy. Maths 6.": _extraction("Amy", Maths=6)})

    result = await _pipeline(transcriber, completion, reporter=reporter).run(Submission(audio=b"ogg", destination="chat-1"))

    assert result.rendered_count == 1
    assert len(reporter.documents) == 1


class SlowRenderer(FakeRenderer):
    def __init__(self, delay: float):
        super().__init__()
        self.delay = delay

    def render(self, record, narrative):
        time.sleep(self.delay)
        return super().render(record, narrative)


@pytest.mark.asyncio
async def test_second_student_record_is_unaffected_by_the_first():
    extractions = {
        "Amy. Maths 6.": _extraction("Amy", Maths=6),
        "Ben. English 8.": _extraction("Ben", English=8),
    }
    with_first = await _pipeline(
        FakeTranscriber("Amy. Maths 6. next student Ben. English 8."),
        RoutingCompletion(extractions),
    ).run(Submission(audio=b"ogg", destination="cli"))
    without_first = await _pipeline(
        FakeTranscriber("Ben. English 8."),
        RoutingCompletion(extractions),
    ).run(Submission(audio=b"ogg", destination="cli"))

    assert with_first.outcomes[1].record == without_first.outcomes[0].record
    assert with_first.outcomes[1].narrative == without_first.outcomes[0].narrative


@pytest.mark.asyncio
async def test_rendering_does_not_block_the_event_loop():
    transcriber = FakeTranscriber("Amy. Maths 6.")
    completion = RoutingCompletion({"Amy. Maths 6.": _extraction("Amy", Maths=6)})
    pipeline = _pipeline(transcriber, completion, renderer=SlowRenderer(0.3))

    ticks = 0
    done = asyncio.Event()

    async def _ticker():
        nonlocal ticks
        while not done.is_set():
            await asyncio.sleep(0.02)
            ticks += 1

    async def _run():
        try:
            return await pipeline.run(Submission(audio=b"ogg", destination="cli"))
        finally:
            done.set()

    result, _ = await asyncio.gather(_run(), _ticker())

    assert result.rendered_count == 1
    assert ticks >= 5


@pytest.mark.asyncio
async def test_slow_render_is_skipped_after_timeout():
    reporter = CollectingReporter()
    transcriber = FakeTranscriber("Amy. Maths 6.")
    completion = RoutingCompletion({"Amy. Maths 6.": _extraction("Amy", Maths=6)})
    settings = PipelineSettings(render_timeout_sec=0.05)
    pipeline = _pipeline(transcriber, completion, renderer=SlowRenderer(0.3), reporter=reporter, settings=settings)

    result = await pipeline.run(Submission(audio=b"ogg", destination="chat-1"))

    assert [(o.status, o.stage) for o in result.outcomes] == [("skipped", "render")]
    assert "Could not process student 1: rendering timed out after 0.05s" in reporter.messages
    assert reporter.documents == []
    assert get_metrics_snapshot()["render_failures"] == 1


@pytest.mark.asyncio
async def test_unexpected_transcriber_error_is_reported():
    reporter = CollectingReporter()
    pipeline = _pipeline(FakeTranscriber(error=RuntimeError("socket closed")), RoutingCompletion({}), reporter=reporter)

    result = await pipeline.run(Submission(audio=b"ogg", destination="chat-1"))

    assert result.status == "transcription_failed"
    assert result.error == "socket closed"
    assert reporter.messages == ["Sorry, I could not transcribe that voice note: socket closed"]
    assert get_metrics_snapshot()["transcription_failures"] == 1
