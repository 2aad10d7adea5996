from __future__ import annotations

from reportbot.pipeline.models import StudentRecord

DEFAULT_SCORE_THRESHOLD = 7

STRONG_COMMENT = "Strong effort"
DEVELOPING_COMMENT = "Continuing to develop"
UNSCORED_COMMENT = "Progressing well"


def fallback_subject_comment(score: int | None, *, threshold: int = DEFAULT_SCORE_THRESHOLD) -> str:
    """
    Stock comment used when the model could not suggest one.
    Scores at or above the threshold read as strong, anything below as developing.
    """
    if score is None:
        return UNSCORED_COMMENT
    return STRONG_COMMENT if score >= threshold else DEVELOPING_COMMENT


def fallback_subject_comments(record: StudentRecord, *, threshold: int = DEFAULT_SCORE_THRESHOLD) -> dict[str, str]:
    return {
        subject: fallback_subject_comment(score, threshold=threshold)
        for subject, score in record.scores.items()
    }
