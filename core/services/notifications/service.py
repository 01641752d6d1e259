from __future__ import annotations

import logging
from typing import Iterable, Optional

from django.db import transaction
from django.utils import timezone

from core.models import Notification, NotificationPreference, User
from core.services.notifications.drivers import driver_for

logger = logging.getLogger(__name__)

VALID_TYPES = {choice for choice, _ in Notification.TYPE_CHOICES}
VALID_PRIORITIES = {choice for choice, _ in Notification.PRIORITY_CHOICES}
DEFAULT_CHANNELS = ('email',)


def notification_type(kind: str) -> str:
    if kind == 'emergency':
        return 'alert'
    return kind if kind in VALID_TYPES else 'system'


def enabled_channels(user: User, kind: str, requested: Iterable[str]) -> list[str]:
    """Filter ``requested`` by the user's preferences for ``kind``.

    A user with no preference rows for this type gets every requested
    channel; otherwise only channels with an enabled row are kept.
    """
    requested = list(requested)
    prefs = list(
        NotificationPreference.objects.filter(user=user, notification_type=kind).values_list('channel', 'is_enabled')
    )
    if not prefs:
        return requested
    enabled = {channel for channel, is_enabled in prefs if is_enabled}
    return [c for c in requested if c in enabled]


def send(user: User, kind: str, title: str, body: str, *, channels: Iterable[str] = DEFAULT_CHANNELS,
         data: Optional[dict] = None, priority: str = 'normal') -> dict:
    """Record an in-app notification and deliver it over ``channels``."""
    data = data or {}
    kind = notification_type(kind)
    notification = Notification.objects.create(
        user=user,
        type=kind,
        title=title,
        body=body,
        priority=priority if priority in VALID_PRIORITIES else 'normal',
        data=data,
        action_url=data.get('action_url', ''),
        related_referral_id=data.get('related_referral_id'),
        related_assessment_id=data.get('related_assessment_id'),
    )

    channels = [c for c in enabled_channels(user, kind, channels) if c != 'in_app']
    results: dict[str, dict] = {}
    for channel in channels:
        driver = driver_for(channel)
        if driver is None:
            logger.warning('No driver available for channel %s', channel)
            continue
        if not driver.is_configured():
            logger.warning('Driver %s is not configured', driver.name)
            results[channel] = {'success': False, 'message': 'Driver not configured', 'driver': driver.name}
            continue
        try:
            results[channel] = driver.send(user, title, body, data)
        except Exception as e:
            logger.exception('Driver %s failed for user %s', driver.name, user.pk)
            results[channel] = driver.error_response(f'Delivery failed: {e}')

    return {'notification_id': notification.pk, 'channels': results}


def send_bulk(users: Iterable[User], kind: str, title: str, body: str, **kwargs) -> dict:
    results = {}
    for user in users:
        results[user.pk] = send(user, kind, title, body, **kwargs)
    failed = sum(1 for r in results.values() if any(not c.get('success') for c in r['channels'].values()))
    return {'total': len(results), 'sent': len(results) - failed, 'failed': failed, 'results': results}


def format_notification(n: Notification) -> dict:
    return {
        'id': n.id,
        'type': n.type,
        'title': n.title,
        'body': n.body,
        'priority': n.priority,
        'data': n.data,
        'action_url': n.action_url,
        'read': n.read_at is not None,
        'read_at': n.read_at.isoformat() if n.read_at else None,
        'related_referral_id': n.related_referral_id,
        'related_assessment_id': n.related_assessment_id,
        'created_at': n.created_at.isoformat(),
    }


def for_user(user: User, *, unread: bool = False, kind: Optional[str] = None):
    qs = Notification.objects.filter(user=user)
    if unread:
        qs = qs.filter(read_at__isnull=True)
    if kind:
        qs = qs.filter(type=kind)
    return qs.order_by('-created_at', '-id')


def mark_read(user: User, notification_id: int) -> Notification:
    n = Notification.objects.get(pk=notification_id, user=user)
    if n.read_at is None:
        n.read_at = timezone.now()
        n.save(update_fields=['read_at'])
    return n


def preferences(user: User) -> list[dict]:
    return [
        {'channel': p.channel, 'notification_type': p.notification_type, 'is_enabled': p.is_enabled,
         'options': p.options}
        for p in NotificationPreference.objects.filter(user=user).order_by('notification_type', 'channel')
    ]


@transaction.atomic
def update_preferences(user: User, items: Iterable[dict]) -> list[dict]:
    for item in items:
        NotificationPreference.objects.update_or_create(
            user=user, channel=item['channel'], notification_type=item['notification_type'],
            defaults={'is_enabled': item['is_enabled'], 'options': item.get('options') or {}},
        )
    return preferences(user)
