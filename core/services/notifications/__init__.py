from core.services.notifications.service import (
    enabled_channels, for_user, format_notification, mark_read, preferences, send, send_bulk, update_preferences,
)

__all__ = [
    'enabled_channels', 'for_user', 'format_notification', 'mark_read', 'preferences', 'send', 'send_bulk',
    'update_preferences',
]
