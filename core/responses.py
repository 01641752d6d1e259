"""
Response envelope shared by every endpoint.

Success and failure bodies have the same outer shape so mobile clients
can branch on ``success`` alone::

    {"success": true, "data": ..., "message": "...", "meta": {...},
     "timestamp": "2025-01-01T00:00:00+08:00"}
"""
from __future__ import annotations

from typing import Any, Optional

from django.utils import timezone
from rest_framework.response import Response


def envelope(data: Any = None, *, success: bool = True, message: Optional[str] = None,
             errors: Any = None, meta: Optional[dict] = None) -> dict:
    body: dict[str, Any] = {'success': success}
    if success or data is not None:
        body['data'] = data
    if message:
        body['message'] = message
    if errors is not None:
        body['errors'] = errors
    if meta is not None:
        body['meta'] = meta
    body['timestamp'] = timezone.localtime().isoformat()
    return body


def ok(data: Any = None, message: Optional[str] = None, *, status: int = 200, meta: Optional[dict] = None) -> Response:
    return Response(envelope(data, message=message, meta=meta), status=status)


def created(data: Any = None, message: Optional[str] = None) -> Response:
    return ok(data, message, status=201)


def fail(message: str, *, status: int, errors: Any = None) -> Response:
    return Response(envelope(success=False, message=message, errors=errors), status=status)


def paginate(qs, page: int, per_page: int) -> tuple[list, dict]:
    """Slice ``qs`` for one page and build the pagination meta block."""
    total = qs.count()
    page = max(1, int(page or 1))
    start = (page - 1) * per_page
    items = list(qs[start:start + per_page])
    last_page = max(1, -(-total // per_page))
    return items, {'total': total, 'page': page, 'per_page': per_page, 'last_page': last_page}
