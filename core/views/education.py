from __future__ import annotations

from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from core.models import EducationalContent
from core.permissions import IsStaff
from core.responses import ok, paginate
from core.serializers.education import EducationListQuerySerializer, LanguageQuerySerializer
from core.services import education as svc
from core.services.sync import changed_since, parse_since, sync_meta


def list_content(request):
    s = EducationListQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    language = vd.get('language')
    items, meta = paginate(svc.filter_content(category=vd.get('category'), search=vd.get('search')),
                           vd['page'], vd['per_page'])
    meta['total_views'] = svc.total_views()
    return ok([svc.format_content(c, language) for c in items], meta=meta)


def show_content(request, pk: int):
    s = LanguageQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    return ok(svc.format_content(svc.view(pk), s.validated_data.get('language')))


def sync_content(request):
    s = LanguageQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    since = parse_since(request.query_params.get('since'))
    server_time = timezone.now()
    items = list(changed_since(svc.published(), since))
    language = s.validated_data.get('language')
    return ok([svc.format_content(c, language) for c in items], meta=sync_meta(items, since, server_time))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def education_list(request):
    return list_content(request)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def education_detail(request, pk: int):
    return show_content(request, pk)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def education_sync(request):
    return sync_content(request)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def education_categories(request):
    data = svc.categories()
    return ok(data, meta={'total_categories': len(EducationalContent.CATEGORY_CHOICES)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def education_stats(request):
    return ok(svc.stats())
