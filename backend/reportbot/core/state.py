# backend/reportbot/core/state.py

from enum import Enum

class PipelineState(str, Enum):
    RECEIVED = "received"
    TRANSCRIBED = "transcribed"
    SEGMENTED = "segmented"
    EXTRACTING = "extracting"
    EXTRACTED = "extracted"
    COMPOSING = "composing"
    COMPOSED = "composed"
    RENDERED = "rendered"
    COMPLETED = "completed"
