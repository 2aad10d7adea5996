from pydantic import BaseModel, ConfigDict


class TelegramChat(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int | str


class TelegramFile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    file_id: str
    duration: int | None = None
    mime_type: str | None = None


class TelegramMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    chat: TelegramChat
    text: str | None = None
    voice: TelegramFile | None = None
    audio: TelegramFile | None = None

    @property
    def voice_file_id(self) -> str:
        source = self.voice or self.audio
        return source.file_id if source else ""


class TelegramUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    update_id: int | None = None
    message: TelegramMessage | None = None


class WebhookAck(BaseModel):
    ok: bool = True


class HealthResponse(BaseModel):
    status: str
    service: str
