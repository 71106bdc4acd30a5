"""Helpers building the `{success, data, error}` JSON envelope."""

from __future__ import annotations

import math
from typing import Any, Dict, Optional


def ok(data: Any = None, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    body.update(extra)
    body["data"] = data
    return body


def listing(items: list, **extra: Any) -> Dict[str, Any]:
    return ok(items, count=len(items), **extra)


def pagination(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "pages": math.ceil(total / limit) if limit else 0,
    }


def error_body(message: str, errors: Optional[list] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "error": message}
    if errors:
        body["errors"] = errors
    return body
