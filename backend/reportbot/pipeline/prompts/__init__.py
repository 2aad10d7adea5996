from .extraction_prompt import build_extraction_prompt
from .report_prompt import build_report_prompt
from .subject_comments_prompt import build_subject_comments_prompt

__all__ = ["build_extraction_prompt", "build_report_prompt", "build_subject_comments_prompt"]
