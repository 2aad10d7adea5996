from __future__ import annotations

from dataclasses import dataclass

from reportbot.core.config import OPENAI_API_KEY, TELEGRAM_API_BASE, TELEGRAM_TOKEN, PipelineSettings
from reportbot.pipeline.composer import ReportComposer
from reportbot.pipeline.engine import ReportPipeline
from reportbot.pipeline.extractor import RecordExtractor
from reportbot.services.openai_service import OpenAICompletionService, WhisperTranscriptionService, build_openai_client
from reportbot.services.render_service import build_renderer
from reportbot.services.telegram_service import TelegramClient, TelegramReporter


@dataclass
class ReportBotServices:
    pipeline: ReportPipeline
    telegram: TelegramClient | None = None

    async def aclose(self) -> None:
        if self.telegram is not None:
            await self.telegram.aclose()


def build_services(settings: PipelineSettings | None = None) -> ReportBotServices:
    settings = settings or PipelineSettings.from_env()

    openai_client = build_openai_client(OPENAI_API_KEY)
    completion = OpenAICompletionService(openai_client, model=settings.openai_model, timeout_sec=settings.openai_timeout_sec)
    transcriber = WhisperTranscriptionService(
        openai_client,
        model=settings.whisper_model,
        timeout_sec=settings.transcribe_timeout_sec,
    )

    telegram = None
    reporter = None
    if TELEGRAM_TOKEN:
        telegram = TelegramClient(TELEGRAM_TOKEN, api_base=TELEGRAM_API_BASE, timeout_sec=settings.telegram_timeout_sec)
        reporter = TelegramReporter(telegram)

    pipeline = ReportPipeline(
        transcriber=transcriber,
        extractor=RecordExtractor(completion, temperature=settings.extraction_temperature),
        composer=ReportComposer(
            completion,
            temperature=settings.report_temperature,
            min_words=settings.report_min_words,
            max_words=settings.report_max_words,
            comment_threshold=settings.comment_score_threshold,
        ),
        renderer=build_renderer(settings.report_format, settings.school_name, settings.school_address),
        reporter=reporter,
        settings=settings,
    )
    return ReportBotServices(pipeline=pipeline, telegram=telegram)
