import os
import sys
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("TELEGRAM_TOKEN", "")


@pytest.fixture(autouse=True)
def _test_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setenv("REPORT_FORMAT", "pdf")
    monkeypatch.delenv("SUGGEST_SUBJECT_COMMENTS", raising=False)
    monkeypatch.delenv("SEGMENT_PRESERVE_CASE", raising=False)


@pytest.fixture(autouse=True)
def _fresh_metrics():
    from reportbot.system_metrics import reset_metrics

    reset_metrics()
    yield
    reset_metrics()


class FakeCompletion:
    """Replays canned replies in call order and records every prompt it was given."""

    def __init__(self, replies=None, *, default: str = ""):
        self.replies = list(replies or [])
        self.default = default
        self.calls = []

    async def complete(self, prompt: str, *, temperature: float) -> str:
        self.calls.append({"prompt": prompt, "temperature": temperature})
        if not self.replies:
            return self.default
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture
def fake_completion():
    return FakeCompletion
