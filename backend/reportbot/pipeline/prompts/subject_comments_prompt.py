import json


def build_subject_comments_prompt(scores: dict, teacher_notes: str) -> str:
    return f"""
Return ONLY JSON with a 3-6 word comment per subject.

SCORES:
{json.dumps(scores, ensure_ascii=False)}

NOTES:
{teacher_notes or "none"}

Example: {{"English": "Excellent progress", "Maths": "Working hard"}}
"""
