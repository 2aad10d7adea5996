from __future__ import annotations

SUBJECT_SYNONYMS = {
    "English": ["english", "eng"],
    "Maths": ["math", "maths", "mathematics"],
    "Science": ["science"],
    "PE": ["pe", "p.e", "p.e.", "physical education"],
    "Reading": ["reading"],
    "Writing": ["writing"],
}

NO_COMMENT_MARKERS = ["#no_comment#", "no comment"]

_SYNONYM_LOOKUP = {
    alias: canonical
    for canonical, aliases in SUBJECT_SYNONYMS.items()
    for alias in aliases
}


def normalize_subject_name(raw) -> str:
    if not isinstance(raw, str) or not raw.strip():
        return "Subject"

    key = " ".join(raw.split()).lower()
    canonical = _SYNONYM_LOOKUP.get(key)
    if canonical:
        return canonical

    # Only the first letter of each word changes; "iPad Skills" keeps its inner casing.
    return " ".join(word[:1].upper() + word[1:] for word in raw.split())


def normalize_comment_text(raw) -> str:
    if not isinstance(raw, str) or not raw:
        return ""

    lower = raw.lower()
    if any(marker in lower for marker in NO_COMMENT_MARKERS):
        return ""
    return raw.strip()
