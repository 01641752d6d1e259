"""
Driver contract for outbound notifications.

A driver delivers one message to one user over one channel and always
answers with a result dict instead of raising::

    {"success": bool, "message": str, "driver": str, "metadata": {...}}
"""
from __future__ import annotations

import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


class BaseDriver:
    name = 'base'
    channel = ''

    def send(self, user, subject: str, message: str, data: Optional[dict] = None) -> dict:
        raise NotImplementedError

    def is_configured(self) -> bool:
        return True

    def success_response(self, metadata: Optional[dict] = None) -> dict:
        return {
            'success': True,
            'message': 'Notification sent successfully',
            'driver': self.name,
            'metadata': metadata or {},
        }

    def error_response(self, message: str, metadata: Optional[dict] = None) -> dict:
        return {
            'success': False,
            'message': message,
            'driver': self.name,
            'metadata': metadata or {},
        }

    def log_notification(self, user, subject: str, result: dict[str, Any]) -> None:
        logger.info(
            'notification driver=%s channel=%s user=%s subject=%r success=%s',
            self.name, self.channel, getattr(user, 'pk', None), subject, result.get('success'),
        )
