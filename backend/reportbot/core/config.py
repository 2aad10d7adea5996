import os
from dataclasses import dataclass, field
from pathlib import Path
from dotenv import load_dotenv

_BACKEND_ROOT = Path(__file__).resolve().parents[2]
_BACKEND_ENV_PATH = _BACKEND_ROOT / ".env"
load_dotenv(dotenv_path=_BACKEND_ENV_PATH, override=False)


def _env_str(name: str, default: str = "") -> str:
    return str(os.getenv(name) or default).strip()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    try:
        return int(str(os.getenv(name) or default).strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(str(os.getenv(name) or default).strip())
    except ValueError:
        return default


OPENAI_API_KEY = _env_str("OPENAI_API_KEY")
TELEGRAM_TOKEN = _env_str("TELEGRAM_TOKEN")
TELEGRAM_API_BASE = _env_str("TELEGRAM_API_BASE", "https://api.telegram.org")
LOG_LEVEL = _env_str("LOG_LEVEL", "INFO").upper()


@dataclass(frozen=True)
class PipelineSettings:
    """
    Read-only snapshot of everything the report pipeline is tuned by.
    Built once at start-up and handed to each component.
    """
    openai_model: str = "gpt-4o-mini"
    whisper_model: str = "whisper-1"
    transcribe_language: str = "en"

    extraction_temperature: float = 0.0
    report_temperature: float = 0.6
    report_min_words: int = 80
    report_max_words: int = 100

    segment_min_length: int = 0
    segment_preserve_case: bool = True

    suggest_subject_comments: bool = False
    comment_score_threshold: int = 7

    report_format: str = "pdf"  # pdf | docx
    school_name: str = "Dorset House School"
    school_address: tuple[str, ...] = field(
        default_factory=lambda: ("Church Ln,", "Bury,", "Pulborough,", "RH20 1PB")
    )

    openai_timeout_sec: float = 30.0
    transcribe_timeout_sec: float = 60.0
    telegram_timeout_sec: float = 30.0
    render_timeout_sec: float = 30.0

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        defaults = cls()
        raw_address = _env_str("SCHOOL_ADDRESS")
        address = tuple(part.strip() for part in raw_address.split(",") if part.strip()) if raw_address else defaults.school_address

        report_format = _env_str("REPORT_FORMAT", defaults.report_format).lower()
        if report_format not in {"pdf", "docx"}:
            report_format = defaults.report_format

        min_words = max(1, _env_int("REPORT_MIN_WORDS", defaults.report_min_words))
        max_words = max(min_words, _env_int("REPORT_MAX_WORDS", defaults.report_max_words))

        return cls(
            openai_model=_env_str("OPENAI_MODEL", defaults.openai_model),
            whisper_model=_env_str("WHISPER_MODEL", defaults.whisper_model),
            transcribe_language=_env_str("TRANSCRIBE_LANGUAGE", defaults.transcribe_language),
            extraction_temperature=_env_float("EXTRACTION_TEMPERATURE", defaults.extraction_temperature),
            report_temperature=_env_float("REPORT_TEMPERATURE", defaults.report_temperature),
            report_min_words=min_words,
            report_max_words=max_words,
            segment_min_length=max(0, _env_int("SEGMENT_MIN_LENGTH", defaults.segment_min_length)),
            segment_preserve_case=_env_bool("SEGMENT_PRESERVE_CASE", defaults.segment_preserve_case),
            suggest_subject_comments=_env_bool("SUGGEST_SUBJECT_COMMENTS", defaults.suggest_subject_comments),
            comment_score_threshold=_env_int("COMMENT_SCORE_THRESHOLD", defaults.comment_score_threshold),
            report_format=report_format,
            school_name=_env_str("SCHOOL_NAME", defaults.school_name),
            school_address=address,
            openai_timeout_sec=max(1.0, _env_float("OPENAI_TIMEOUT_SEC", defaults.openai_timeout_sec)),
            transcribe_timeout_sec=max(1.0, _env_float("TRANSCRIBE_TIMEOUT_SEC", defaults.transcribe_timeout_sec)),
            telegram_timeout_sec=max(1.0, _env_float("TELEGRAM_TIMEOUT_SEC", defaults.telegram_timeout_sec)),
            render_timeout_sec=max(1.0, _env_float("RENDER_TIMEOUT_SEC", defaults.render_timeout_sec)),
        )
