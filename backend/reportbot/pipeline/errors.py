class ReportBotError(RuntimeError):
    """Base class for failures raised by the report pipeline and its collaborators."""


class TranscriptionError(ReportBotError):
    """Speech-to-text failed; nothing downstream can run for this submission."""


class CompletionError(ReportBotError):
    """The language-model call failed or timed out."""


class ExtractionParseError(ReportBotError):
    def __init__(self, segment_index: int, detail: str = ""):
        self.segment_index = segment_index
        self.detail = detail
        super().__init__(f"Could not parse student {segment_index}" + (f": {detail}" if detail else ""))


class RenderError(ReportBotError):
    pass


class DeliveryError(ReportBotError):
    pass
