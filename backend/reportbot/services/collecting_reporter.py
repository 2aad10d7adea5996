from dataclasses import dataclass, field

from reportbot.pipeline.models import RenderedDocument


@dataclass
class CollectingReporter:
    """Keeps progress messages and documents in memory for a synchronous HTTP reply."""
    messages: list[str] = field(default_factory=list)
    documents: list[RenderedDocument] = field(default_factory=list)

    async def notify(self, destination: str, text: str) -> None:
        self.messages.append(text)

    async def deliver(self, destination: str, document: RenderedDocument) -> None:
        self.documents.append(document)
