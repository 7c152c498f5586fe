"""Shared helpers for store modules."""
import hashlib
import json
from datetime import datetime, timezone


def utcnow() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def hash_id(text: str) -> str:
    return hashlib.sha256(text.encode()).hexdigest()[:16]


def row_to_dict(row, json_fields: tuple[str, ...] = ()) -> dict:
    d = dict(row)
    for k in json_fields:
        if isinstance(d.get(k), str):
            try:
                d[k] = json.loads(d[k])
            except json.JSONDecodeError:
                pass
    return d
