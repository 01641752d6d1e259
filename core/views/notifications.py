from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from core.responses import ok, paginate
from core.serializers.notifications import NotificationListQuerySerializer, PreferencesSerializer
from core.services import notifications as svc


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_list(request):
    """The caller's notifications, newest first; ``meta.unread`` counts all unread."""
    s = NotificationListQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    items, meta = paginate(svc.for_user(request.user, unread=vd['unread'], kind=vd.get('type')),
                           vd['page'], vd['per_page'])
    meta['unread'] = svc.for_user(request.user, unread=True).count()
    return ok([svc.format_notification(n) for n in items], meta=meta)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_read(request, pk: int):
    return ok(svc.format_notification(svc.mark_read(request.user, pk)), 'Notification marked as read')


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def notification_preferences(request):
    if request.method == 'PUT':
        s = PreferencesSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        return ok(svc.update_preferences(request.user, s.validated_data['preferences']), 'Preferences updated')
    return ok(svc.preferences(request.user))
