from __future__ import annotations

import dataclasses
import logging

from reportbot.pipeline.errors import CompletionError
from reportbot.pipeline.fallback import DEFAULT_SCORE_THRESHOLD, fallback_subject_comments
from reportbot.pipeline.json_payload import parse_model_json
from reportbot.pipeline.models import StudentRecord
from reportbot.pipeline.normalizer import normalize_comment_text, normalize_subject_name
from reportbot.pipeline.prompts.report_prompt import build_report_prompt
from reportbot.pipeline.prompts.subject_comments_prompt import build_subject_comments_prompt

logger = logging.getLogger("reportbot.pipeline.composer")


class ReportComposer:
    def __init__(
        self,
        completion,
        *,
        temperature: float = 0.6,
        min_words: int = 80,
        max_words: int = 100,
        comment_threshold: int = DEFAULT_SCORE_THRESHOLD,
    ):
        self.completion = completion
        self.temperature = temperature
        self.min_words = min_words
        self.max_words = max(min_words, max_words)
        self.comment_threshold = comment_threshold

    async def compose(self, record: StudentRecord) -> str:
        prompt = build_report_prompt(
            student_name=record.student_name,
            scores=record.scores,
            subject_comments=record.subject_comments,
            teacher_notes=record.teacher_notes,
            min_words=self.min_words,
            max_words=self.max_words,
        )
        raw = await self.completion.complete(prompt, temperature=self.temperature)
        return str(raw or "").strip()

    async def suggest_subject_comments(self, record: StudentRecord) -> StudentRecord:
        """
        Fill empty comments on scored subjects with short model-written ones.

        A reply that fails or does not parse falls back to the threshold
        policy in pipeline.fallback. Subjects that already have a comment, or
        whose comment was explicitly suppressed, are left alone.
        """
        missing = {
            subject: score
            for subject, score in record.scores.items()
            if not record.subject_comments.get(subject) and subject not in record.suppressed_subjects
        }
        if not missing:
            return record

        suggestions: dict[str, str] = {}
        try:
            raw = await self.completion.complete(
                build_subject_comments_prompt(missing, record.teacher_notes),
                temperature=self.temperature,
            )
            payload = parse_model_json(raw) or {}
        except CompletionError as exc:
            logger.warning("subject comment suggestion failed, using fallback policy | err=%s", exc)
            payload = {}

        for raw_subject, raw_comment in payload.items():
            suggestions[normalize_subject_name(raw_subject)] = normalize_comment_text(raw_comment)

        fallback = fallback_subject_comments(record, threshold=self.comment_threshold)
        comments = dict(record.subject_comments)
        for subject in missing:
            comments[subject] = suggestions.get(subject) or fallback[subject]

        return dataclasses.replace(record, subject_comments=comments)
