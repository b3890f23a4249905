from __future__ import annotations

import time
from typing import Optional
from uuid import uuid4

from tempo.logging_config import get_request_id, reset_request_id, set_request_id, setup_logging

__all__ = [
    "get_request_id",
    "monotonic_ms",
    "new_request_id",
    "request_log_fields",
    "reset_request_id",
    "set_request_id",
    "setup_logging",
]


def new_request_id() -> str:
    return uuid4().hex


def request_log_fields(
    *,
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    client_ip: Optional[str],
    coach_id: Optional[str] = None,
) -> dict[str, object]:
    fields: dict[str, object] = {
        "method": method,
        "path": path,
        "status_code": int(status_code),
        "duration_ms": round(float(duration_ms), 2),
        "client_ip": client_ip or "",
    }
    if coach_id:
        fields["coach_id"] = coach_id
    return fields


def monotonic_ms() -> float:
    return time.perf_counter() * 1000.0
