from __future__ import annotations

import logging
import math

from reportbot.core.logger import log_event
from reportbot.pipeline.json_payload import parse_model_json
from reportbot.pipeline.models import ExtractionFailure, StudentRecord
from reportbot.pipeline.normalizer import normalize_comment_text, normalize_subject_name
from reportbot.pipeline.prompts.extraction_prompt import build_extraction_prompt

logger = logging.getLogger("reportbot.pipeline.extractor")

MIN_SCORE = 0
MAX_SCORE = 10


def coerce_score(value) -> int | None:
    """
    Turn a model-supplied score into an int in [0, 10].
    Returns None when the value is not a finite number.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None

    # Half-up rounding: 6.5 -> 7, not Python's banker's 6.
    rounded = math.floor(number + 0.5)
    return max(MIN_SCORE, min(MAX_SCORE, int(rounded)))


def repair_record(payload: dict, fallback_index: int) -> StudentRecord:
    raw_name = payload.get("student_name")
    if isinstance(raw_name, str) and raw_name.strip():
        student_name = raw_name.strip()
    else:
        student_name = f"Student {fallback_index}"

    raw_scores = payload.get("scores")
    if not isinstance(raw_scores, dict):
        raw_scores = {}

    scores: dict[str, int] = {}
    for raw_subject, raw_value in raw_scores.items():
        score = coerce_score(raw_value)
        if score is None:
            continue
        scores[normalize_subject_name(raw_subject)] = score

    raw_comments = payload.get("subject_comments")
    if not isinstance(raw_comments, dict):
        raw_comments = {}

    subject_comments: dict[str, str] = {}
    suppressed: set[str] = set()
    for raw_subject, raw_comment in raw_comments.items():
        subject = normalize_subject_name(raw_subject)
        comment = normalize_comment_text(raw_comment)
        subject_comments[subject] = comment
        # An explicit empty comment from the model is a "no comment", not a gap.
        if comment:
            suppressed.discard(subject)
        else:
            suppressed.add(subject)

    for subject in scores:
        subject_comments.setdefault(subject, "")

    raw_notes = payload.get("teacher_notes")
    teacher_notes = raw_notes.strip() if isinstance(raw_notes, str) else ""

    return StudentRecord(
        student_name=student_name,
        scores=scores,
        subject_comments=subject_comments,
        teacher_notes=teacher_notes,
        suppressed_subjects=frozenset(suppressed),
    )


class RecordExtractor:
    def __init__(self, completion, *, temperature: float = 0.0):
        self.completion = completion
        self.temperature = temperature

    async def extract(self, segment: str, fallback_index: int, *, session_id: str = "") -> StudentRecord | ExtractionFailure:
        prompt = build_extraction_prompt(segment)
        raw = await self.completion.complete(prompt, temperature=self.temperature)

        payload = parse_model_json(raw)
        if payload is None:
            detail = "empty response" if not str(raw or "").strip() else "invalid JSON"
            logger.warning("extraction unparseable | segment=%s detail=%s", fallback_index, detail)
            log_event("extractor", "extraction_unparseable", session_id, segment_index=fallback_index, response=raw)
            return ExtractionFailure(segment_index=fallback_index, reason="unparseable", detail=detail)

        record = repair_record(payload, fallback_index)
        log_event(
            "extractor",
            "record_extracted",
            session_id,
            segment_index=fallback_index,
            subjects=sorted(record.subject_comments.keys()),
            scored=len(record.scores),
            placeholder_name=record.student_name == f"Student {fallback_index}",
        )
        return record
