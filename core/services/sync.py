"""
Incremental pull for the mobile app.

A client sends the ``server_time`` of its previous pull as ``since`` and
receives every row updated after it, oldest change first.
"""
from __future__ import annotations

from datetime import datetime, time

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from rest_framework.exceptions import ValidationError


def parse_since(raw) -> datetime:
    if not raw:
        raise ValidationError({'since': ['This parameter is required.']})
    raw = str(raw).strip()
    if 'T' in raw:
        # an unencoded '+' offset arrives as a space
        raw = raw.replace(' ', '+')
    try:
        value = parse_datetime(raw)
        if value is None:
            day = parse_date(raw)
            value = datetime.combine(day, time.min) if day else None
    except ValueError:
        value = None
    if value is None:
        raise ValidationError({'since': ['Enter a valid ISO-8601 timestamp.']})
    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


def changed_since(qs, since: datetime):
    return qs.filter(updated_at__gt=since).order_by('updated_at', 'id')


def sync_meta(items, since: datetime, server_time: datetime) -> dict:
    """``server_time`` is the clock reading taken before the query ran."""
    return {
        'count': len(items),
        'since': since.isoformat(),
        'server_time': server_time.isoformat(),
    }
