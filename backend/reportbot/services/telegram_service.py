from __future__ import annotations

import logging

import httpx

from reportbot.pipeline.errors import DeliveryError
from reportbot.pipeline.models import RenderedDocument

logger = logging.getLogger("reportbot.services.telegram_service")


class TelegramClient:
    """
    Minimal Telegram Bot API wrapper: text messages, documents and voice-note downloads.
    """

    def __init__(
        self,
        token: str,
        *,
        api_base: str = "https://api.telegram.org",
        timeout_sec: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._token = token
        self._api_base = api_base.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_sec))

    @property
    def bot_url(self) -> str:
        return f"{self._api_base}/bot{self._token}"

    @property
    def file_url(self) -> str:
        return f"{self._api_base}/file/bot{self._token}"

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(self, method: str, **kwargs) -> dict:
        try:
            resp = await self._client.post(f"{self.bot_url}/{method}", **kwargs)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Telegram {method} failed: {exc}") from exc
        except ValueError as exc:
            raise DeliveryError(f"Telegram {method} returned a non-JSON body") from exc

        if not isinstance(data, dict) or not data.get("ok", False):
            description = data.get("description") if isinstance(data, dict) else None
            raise DeliveryError(f"Telegram {method} rejected: {description or 'unknown error'}")
        return data

    async def send_message(self, chat_id: str, text: str, parse_mode: str | None = None) -> None:
        payload = {"chat_id": chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        await self._call("sendMessage", json=payload)

    async def send_document(self, chat_id: str, document: RenderedDocument) -> None:
        await self._call(
            "sendDocument",
            data={"chat_id": str(chat_id), "caption": document.caption},
            files={"document": (document.filename, document.content, document.media_type)},
        )

    async def download_voice(self, file_id: str) -> bytes:
        try:
            resp = await self._client.get(f"{self.bot_url}/getFile", params={"file_id": file_id})
            resp.raise_for_status()
            file_path = str(((resp.json() or {}).get("result") or {}).get("file_path") or "")
            if not file_path:
                raise DeliveryError("Telegram getFile returned no file_path")

            audio = await self._client.get(f"{self.file_url}/{file_path}")
            audio.raise_for_status()
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Telegram voice download failed: {exc}") from exc
        return audio.content


class TelegramReporter:
    def __init__(self, client: TelegramClient):
        self.client = client

    async def notify(self, destination: str, text: str) -> None:
        await self.client.send_message(destination, text)

    async def deliver(self, destination: str, document: RenderedDocument) -> None:
        await self.client.send_document(destination, document)
        logger.info("document delivered | chat=%s filename=%s bytes=%s", destination, document.filename, len(document.content))
