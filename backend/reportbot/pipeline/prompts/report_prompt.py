def format_score_lines(scores: dict) -> str:
    return "\n".join(f"- {subject}: {value}/10" for subject, value in scores.items())


def format_comment_hints(subject_comments: dict) -> str:
    return "\n".join(
        f"- {subject}: {comment.strip()}"
        for subject, comment in subject_comments.items()
        if isinstance(comment, str) and comment.strip()
    )


def build_report_prompt(
    student_name: str,
    scores: dict,
    subject_comments: dict,
    teacher_notes: str,
    min_words: int = 80,
    max_words: int = 100,
) -> str:
    score_lines = format_score_lines(scores)
    comment_lines = format_comment_hints(subject_comments)

    return f"""
Write a {min_words}-{max_words} word British school report for {student_name}.

TONE:
Casual but respectful: friendly, modern and down-to-earth, like a young teacher speaking naturally to parents.
Warm, supportive and clear. No cliches. No invented details. Must sound real and human.

INSTRUCTIONS:
- Base the report primarily on the subjects and scores provided.
- Use the teacher notes as general guidance about the pupil's term.
- You MAY use the subject comments as subtle hints, but do not copy them verbatim or list them mechanically.
- Do NOT mention the scores numerically (do not say "7/10").
- Keep it to one paragraph of {min_words}-{max_words} words.
- If there are no scores, write a general but realistic termly summary.

SUBJECT SCORES:
{score_lines or "No explicit scores provided."}

SUBJECT COMMENTS (hints only):
{comment_lines or "No specific subject comments."}

TEACHER NOTES (overall):
"{teacher_notes}"
"""
