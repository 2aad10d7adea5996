from __future__ import annotations

import re

STUDENT_DELIMITER = re.compile(r"\bnext\s+student\b", re.IGNORECASE)


def segment_transcript(transcript: str | None, *, min_length: int = 0, preserve_case: bool = True) -> list[str]:
    """
    Split one dictated transcript into per-student text, in spoken order.

    The delimiter is the phrase "next student" in any casing. Pieces that are
    empty after trimming, or shorter than min_length, are dropped as noise.
    With preserve_case=False the whole transcript is lower-cased first.
    """
    text = str(transcript or "")
    if not text.strip():
        return []

    if not preserve_case:
        text = text.lower()

    threshold = max(1, int(min_length or 0))
    segments: list[str] = []
    for piece in STUDENT_DELIMITER.split(text):
        cleaned = piece.strip()
        if len(cleaned) < threshold:
            continue
        segments.append(cleaned)
    return segments
