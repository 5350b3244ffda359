"""Health and metrics endpoints."""

from __future__ import annotations

import time
from typing import Any

from fastapi import APIRouter, Response

router = APIRouter()

__all__ = ["router", "record_request", "record_prediction", "record_match"]

# ──────────── In-process counters ────────────
_metrics: dict[str, Any] = {
    "requests_total": 0,
    "requests_by_status": {},
    "predictions_by_tier": {},
    "match_requests": 0,
    "match_empty": 0,
    "start_time": time.time(),
}


def record_request(status: int) -> None:
    """Call from middleware to track request counts."""
    _metrics["requests_total"] += 1
    key = str(status)
    _metrics["requests_by_status"][key] = _metrics["requests_by_status"].get(key, 0) + 1


def record_prediction(tier: str) -> None:
    _metrics["predictions_by_tier"][tier] = _metrics["predictions_by_tier"].get(tier, 0) + 1


def record_match(returned: int) -> None:
    _metrics["match_requests"] += 1
    if returned == 0:
        _metrics["match_empty"] += 1


@router.get("/health", summary="Liveness probe", operation_id="health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/metrics", summary="Prometheus metrics", operation_id="metrics")
async def metrics() -> Response:
    """Prometheus text exposition format."""
    uptime = time.time() - _metrics["start_time"]

    lines = [
        "# HELP physiobook_up Scoring service is up",
        "# TYPE physiobook_up gauge",
        "physiobook_up 1",
        "",
        "# HELP physiobook_uptime_seconds Seconds since process start",
        "# TYPE physiobook_uptime_seconds gauge",
        f"physiobook_uptime_seconds {uptime:.1f}",
        "",
        "# HELP physiobook_requests_total Total HTTP requests",
        "# TYPE physiobook_requests_total counter",
        f"physiobook_requests_total {_metrics['requests_total']}",
    ]
    for status, count in sorted(_metrics["requests_by_status"].items()):
        lines.append(f'physiobook_requests_total{{status="{status}"}} {count}')

    lines += [
        "",
        "# HELP physiobook_no_show_predictions_total No-show predictions by risk tier",
        "# TYPE physiobook_no_show_predictions_total counter",
    ]
    for tier, count in sorted(_metrics["predictions_by_tier"].items()):
        lines.append(f'physiobook_no_show_predictions_total{{tier="{tier}"}} {count}')

    lines += [
        "",
        "# HELP physiobook_match_requests_total Therapist matching requests",
        "# TYPE physiobook_match_requests_total counter",
        f"physiobook_match_requests_total {_metrics['match_requests']}",
        f'physiobook_match_requests_total{{result="empty"}} {_metrics["match_empty"]}',
        "",
    ]
    return Response(content="\n".join(lines), media_type="text/plain; charset=utf-8")
