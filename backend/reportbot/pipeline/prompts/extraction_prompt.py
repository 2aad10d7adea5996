TEACHER_NOTES_MARKERS = ["teacher notes", "teachers notes", "now teacher notes", "#teachers_notes#"]
NO_COMMENT_PHRASES = ["no comment", "#no_comment#"]


def build_extraction_prompt(student_text: str) -> str:
    """
    Build the prompt that turns one pupil's dictated segment into strict JSON.
    Called once per segment, at temperature 0.
    """
    markers = ", ".join(f'"{m}"' for m in TEACHER_NOTES_MARKERS)
    no_comment = " or ".join(f'"{p}"' for p in NO_COMMENT_PHRASES)

    return f"""
You will be given a short, spoken-style description for a single pupil.

The teacher may:
- Mention subjects in any order.
- Mention only some subjects.
- Give scores, comments, both, or neither.
- Miss some subjects entirely.
- Speak casually or inconsistently.
- Say phrases like {markers} to move from subject-level info to general notes.

INTERPRETATION RULES
1. Everything clearly tied to a specific subject (e.g. "english 5 great work", "maths 5 struggled a bit") is SUBJECT-LEVEL information.
2. Anything AFTER a teacher-notes marker ({markers}) is general TEACHER NOTES about the pupil overall.
3. If there is no explicit teacher-notes marker, treat comments about the whole term or the child's general attitude as TEACHER NOTES.
4. If the teacher says {no_comment} for a subject, that subject's comment must be an empty string "".

YOUR JOB:
Return ONLY strict JSON in this format:

{{
  "student_name": "Name or best guess",
  "scores": {{
    "<subject>": <integer 0-10>
  }},
  "subject_comments": {{
    "<subject>": "short comment about this subject or empty string"
  }},
  "teacher_notes": "general notes about the pupil or empty string"
}}

DETAILED RULES:
- Only include subjects that were actually mentioned in the text.
- A subject may have a score only, a comment only, both, or neither (then do not include it).
- If a clear numerical score 0-10 is given for a subject, put it in "scores".
- If descriptive words clearly describe performance in a subject, put them in "subject_comments".
- If the teacher says {no_comment} for a subject, set its comment to "".
- General remarks not tied to a single subject go into "teacher_notes"; use "" if there are none.
- Never use null. Use empty objects {{}} and empty strings "" when needed.
- Do NOT add or invent subjects, scores, or achievements.

TEXT:
\"\"\"{student_text}\"\"\"
"""
