from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from reportbot.pipeline.errors import ExtractionParseError


@dataclass(frozen=True)
class StudentRecord:
    """
    Validated extraction result for one pupil.
    Every scored subject also has an entry in subject_comments (possibly "").
    suppressed_subjects holds subjects whose comment was explicitly cleared
    ("no comment"), as opposed to never given.
    """
    student_name: str
    scores: dict[str, int] = field(default_factory=dict)
    subject_comments: dict[str, str] = field(default_factory=dict)
    teacher_notes: str = ""
    suppressed_subjects: frozenset[str] = field(default_factory=frozenset)

    def subjects(self) -> list[str]:
        ordered = list(self.scores.keys())
        for subject in self.subject_comments.keys():
            if subject not in self.scores:
                ordered.append(subject)
        return ordered


@dataclass(frozen=True)
class ExtractionFailure:
    segment_index: int
    reason: str = "unparseable"
    detail: str = ""

    def to_error(self) -> ExtractionParseError:
        return ExtractionParseError(self.segment_index, self.detail or self.reason)


@dataclass(frozen=True)
class RenderedDocument:
    content: bytes
    filename: str
    media_type: str
    caption: str = ""


@dataclass(frozen=True)
class Submission:
    audio: bytes
    destination: str
    filename: str = "voice.ogg"
    language: Optional[str] = None


@dataclass
class SegmentOutcome:
    index: int
    status: str  # rendered | skipped
    stage: str = ""  # extract | compose | render | deliver (set when skipped)
    record: Optional[StudentRecord] = None
    narrative: str = ""
    document: Optional[RenderedDocument] = None
    error: str = ""


@dataclass
class PipelineResult:
    status: str  # completed | no_students | transcription_failed
    transcript: str = ""
    segments: list[str] = field(default_factory=list)
    outcomes: list[SegmentOutcome] = field(default_factory=list)
    error: str = ""

    @property
    def documents(self) -> list[RenderedDocument]:
        return [o.document for o in self.outcomes if o.document is not None]

    @property
    def rendered_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "rendered")

    @property
    def skipped_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "skipped")
