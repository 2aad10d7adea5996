import threading
import time
from typing import Any


_lock = threading.Lock()
_metrics: dict[str, float] = {
    "submissions_total": 0.0,
    "transcription_failures": 0.0,
    "no_student_submissions": 0.0,
    "students_found": 0.0,
    "students_rendered": 0.0,
    "students_skipped": 0.0,
    "extraction_failures": 0.0,
    "completion_failures": 0.0,
    "render_failures": 0.0,
    "delivery_failures": 0.0,
    "pipeline_latency_total_ms": 0.0,
    "pipeline_latency_samples": 0.0,
}

_SKIP_STAGE_METRICS = {
    "extract": "extraction_failures",
    "compose": "completion_failures",
    "render": "render_failures",
    "deliver": "delivery_failures",
}


def increment_metric(name: str, amount: float = 1.0) -> None:
    key = str(name or "").strip()
    if not key:
        return
    with _lock:
        _metrics[key] = float(_metrics.get(key, 0.0)) + float(amount)


def observe_pipeline_latency_ms(value_ms: float) -> None:
    latency = max(0.0, float(value_ms or 0.0))
    with _lock:
        _metrics["pipeline_latency_total_ms"] = float(_metrics.get("pipeline_latency_total_ms", 0.0)) + latency
        _metrics["pipeline_latency_samples"] = float(_metrics.get("pipeline_latency_samples", 0.0)) + 1.0


def record_segment_skip(stage: str) -> None:
    normalized = str(stage or "").strip().lower()
    metric_key = _SKIP_STAGE_METRICS.get(normalized)
    with _lock:
        _metrics["students_skipped"] = float(_metrics.get("students_skipped", 0.0)) + 1.0
        if metric_key:
            _metrics[metric_key] = float(_metrics.get(metric_key, 0.0)) + 1.0


def reset_metrics() -> None:
    with _lock:
        for key in list(_metrics.keys()):
            _metrics[key] = 0.0


def get_metrics_snapshot(extra: dict[str, Any] | None = None) -> dict[str, Any]:
    with _lock:
        data = dict(_metrics)

    latency_samples = max(1.0, float(data.get("pipeline_latency_samples") or 0.0))

    payload: dict[str, Any] = {
        "generated_at": time.time(),
        "submissions_total": int(data.get("submissions_total") or 0.0),
        "transcription_failures": int(data.get("transcription_failures") or 0.0),
        "no_student_submissions": int(data.get("no_student_submissions") or 0.0),
        "students_found": int(data.get("students_found") or 0.0),
        "students_rendered": int(data.get("students_rendered") or 0.0),
        "students_skipped": int(data.get("students_skipped") or 0.0),
        "extraction_failures": int(data.get("extraction_failures") or 0.0),
        "completion_failures": int(data.get("completion_failures") or 0.0),
        "render_failures": int(data.get("render_failures") or 0.0),
        "delivery_failures": int(data.get("delivery_failures") or 0.0),
        "pipeline_latency_total_ms": float(data.get("pipeline_latency_total_ms") or 0.0),
        "pipeline_latency_samples": int(data.get("pipeline_latency_samples") or 0.0),
        "avg_pipeline_latency_ms": round(float(data.get("pipeline_latency_total_ms") or 0.0) / latency_samples, 2),
    }

    if extra:
        payload.update(extra)
    return payload
