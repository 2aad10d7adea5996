import logging

from fastapi import APIRouter, BackgroundTasks, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from reportbot.pipeline.errors import DeliveryError
from reportbot.pipeline.models import Submission
from reportbot.schemas import TelegramUpdate, WebhookAck

router = APIRouter(prefix="/api/telegram", tags=["telegram"])
logger = logging.getLogger("reportbot.api.telegram")

HELP_TEXT = """Report Bot

Send a voice note like:
"Harry Ramsden. English 7, Maths 5, PE 9. Really improved confidence this term."
(or say NEXT STUDENT for more)

You'll receive a letterheaded report for each pupil."""


async def _process_voice_note(services, chat_id: str, file_id: str) -> None:
    telegram = services.telegram
    try:
        audio = await telegram.download_voice(file_id)
        await services.pipeline.run(Submission(audio=audio, destination=chat_id, filename="voice.ogg"))
    except Exception as exc:
        logger.exception("voice note processing failed | chat=%s", chat_id)
        try:
            await telegram.send_message(chat_id, f"Error: {exc}")
        except DeliveryError as send_exc:
            logger.warning("error notice not delivered | chat=%s err=%s", chat_id, send_exc)


@router.get("/webhook")
async def webhook_status():
    return {"status": "Bot running"}


@router.post("/webhook", response_model=WebhookAck)
async def telegram_webhook(request: Request, background_tasks: BackgroundTasks):
    services = request.app.state.services
    if services.telegram is None:
        return JSONResponse(status_code=503, content={"ok": False, "error": "Telegram is not configured"})

    # Telegram retries anything that is not a 200, so malformed updates are acknowledged and dropped.
    try:
        update = TelegramUpdate.model_validate(await request.json())
    except (ValueError, ValidationError) as exc:
        logger.info("ignoring malformed update | err=%s", exc)
        return WebhookAck()

    message = update.message
    if message is None:
        return WebhookAck()

    chat_id = str(message.chat.id)
    text = (message.text or "").strip()
    telegram = services.telegram

    try:
        if text.startswith("/start") or text.startswith("/help"):
            await telegram.send_message(chat_id, HELP_TEXT)
            return WebhookAck()

        file_id = message.voice_file_id
        if not file_id:
            await telegram.send_message(chat_id, "Please send a voice note")
            return WebhookAck()

        await telegram.send_message(chat_id, "Transcribing and creating your reports...")
    except DeliveryError as exc:
        logger.warning("telegram reply failed | chat=%s err=%s", chat_id, exc)
        return WebhookAck()

    background_tasks.add_task(_process_voice_note, services, chat_id, file_id)
    return WebhookAck()
