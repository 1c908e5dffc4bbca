# riskregister/utils/helper.py
from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Any, Optional

from quart import jsonify


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso(timespec: str = "seconds") -> str:
    """Waktu sekarang (UTC) dalam ISO-8601, contoh: 2025-08-17T01:55:12+00:00."""
    return utc_now().isoformat(timespec=timespec)


def new_id() -> str:
    return uuid.uuid4().hex[:12]


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Normalisasi nilai tanggal dari JSON / spreadsheet ke datetime UTC (aware).

    - ``None`` atau string kosong → ``None``
    - tanggal saja ("2024-01-31") → tengah malam UTC
    - datetime naive → dianggap UTC
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if not text:
            return None
        dt = datetime.fromisoformat(text)

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def iso_date(value: Optional[datetime]) -> str:
    """Bagian tanggal saja (YYYY-MM-DD), string kosong bila tidak ada."""
    return value.date().isoformat() if value else ""


def response_error(message: str, http_status: int = 500, **extra: Any):
    payload = {"status": "error", "message": message, "time": utc_now_iso()}
    payload.update(extra)
    return jsonify(payload), http_status
