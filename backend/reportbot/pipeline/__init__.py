"""
- normalizer: canonical subject names and comment text
- segmenter: split one transcript into per-student text
- extractor: language-model extraction into a validated StudentRecord
- composer: narrative report writing
- engine: the per-submission orchestration
"""
from .composer import ReportComposer
from .engine import ReportPipeline
from .extractor import RecordExtractor
from .models import ExtractionFailure, PipelineResult, RenderedDocument, SegmentOutcome, StudentRecord, Submission
from .normalizer import normalize_comment_text, normalize_subject_name
from .segmenter import segment_transcript

__all__ = [
    "ExtractionFailure",
    "PipelineResult",
    "RecordExtractor",
    "RenderedDocument",
    "ReportComposer",
    "ReportPipeline",
    "SegmentOutcome",
    "StudentRecord",
    "Submission",
    "normalize_comment_text",
    "normalize_subject_name",
    "segment_transcript",
]
