import asyncio
import io
import logging
from openai import AsyncOpenAI, OpenAIError

from reportbot.pipeline.errors import CompletionError, TranscriptionError

logger = logging.getLogger("reportbot.services.openai_service")


def build_openai_client(api_key: str) -> AsyncOpenAI:
    if not api_key:
        logger.warning("OPENAI_API_KEY is not set; transcription and completion calls will fail")
    return AsyncOpenAI(api_key=api_key or "unset")


class OpenAICompletionService:
    """
    Single-turn chat completion. No retries: a failure or timeout surfaces
    as CompletionError and the caller decides what to skip.
    """

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-4o-mini", timeout_sec: float = 30.0):
        self.client = client
        self.model = model
        self.timeout_sec = timeout_sec

    async def complete(self, prompt: str, *, temperature: float) -> str:
        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    temperature=temperature,
                    messages=[{"role": "user", "content": prompt}],
                ),
                timeout=self.timeout_sec,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("completion timeout | model=%s timeout=%s", self.model, self.timeout_sec)
            raise CompletionError(f"completion timed out after {self.timeout_sec:g}s") from exc
        except OpenAIError as exc:
            logger.warning("completion failure | model=%s err=%s", self.model, exc)
            raise CompletionError(f"completion failed: {exc}") from exc

        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""
        message = getattr(choices[0], "message", None)
        return str(getattr(message, "content", "") or "")


class WhisperTranscriptionService:
    def __init__(self, client: AsyncOpenAI, model: str = "whisper-1", timeout_sec: float = 60.0):
        self.client = client
        self.model = model
        self.timeout_sec = timeout_sec

    async def transcribe(self, audio: bytes, *, filename: str = "voice.ogg", language: str = "en") -> str:
        if not audio:
            raise TranscriptionError("no audio received")

        upload = io.BytesIO(audio)
        upload.name = filename or "voice.ogg"
        params = {"model": self.model, "file": upload}
        if language:
            params["language"] = language
        try:
            result = await asyncio.wait_for(
                self.client.audio.transcriptions.create(**params),
                timeout=self.timeout_sec,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("transcription timeout | model=%s timeout=%s", self.model, self.timeout_sec)
            raise TranscriptionError(f"transcription timed out after {self.timeout_sec:g}s") from exc
        except OpenAIError as exc:
            logger.warning("transcription failure | model=%s err=%s", self.model, exc)
            raise TranscriptionError(f"transcription failed: {exc}") from exc

        return str(getattr(result, "text", "") or "").strip()
