from __future__ import annotations

from datetime import timedelta
from typing import Any, Optional

from django.db.models import Count, F, Q, Sum
from django.utils import timezone

from core.models import EducationalContent


def format_content(c: EducationalContent, language: Optional[str] = None) -> dict[str, Any]:
    """Shape a content row; with ``language`` only that translation is returned."""
    data: dict[str, Any] = {
        'id': c.id,
        'category': c.category,
        'version': c.version,
        'reading_time_minutes': c.reading_time_minutes,
        'image_url': c.image_url,
        'author': c.author,
        'views': c.views,
        'published': c.published,
        'created_at': c.created_at.isoformat() if c.created_at else None,
        'updated_at': c.updated_at.isoformat() if c.updated_at else None,
    }
    if language in EducationalContent.LANGUAGES:
        data['language'] = language
        for field in ('title', 'description', 'content'):
            data[field] = getattr(c, f'{field}_{language}')
    else:
        for field in ('title', 'description', 'content'):
            for lang in EducationalContent.LANGUAGES:
                data[f'{field}_{lang}'] = getattr(c, f'{field}_{lang}')
    return data


def published():
    return EducationalContent.objects.filter(published=True)


def filter_content(*, category=None, search=None):
    qs = published()
    if category:
        qs = qs.filter(category=category)
    if search:
        qs = qs.filter(
            Q(title_en__icontains=search) | Q(title_fil__icontains=search)
            | Q(description_en__icontains=search) | Q(description_fil__icontains=search)
            | Q(content_en__icontains=search) | Q(content_fil__icontains=search)
        )
    return qs.order_by('-created_at', '-id')


def total_views() -> int:
    return published().aggregate(n=Sum('views'))['n'] or 0


def view(content_id: int) -> EducationalContent:
    c = published().get(pk=content_id)
    EducationalContent.objects.filter(pk=c.pk).update(views=F('views') + 1)
    c.refresh_from_db(fields=['views'])
    return c


def categories() -> list[dict[str, Any]]:
    counts = dict(published().values_list('category').annotate(n=Count('id')).order_by())
    return [
        {'value': key, 'label': label, 'count': counts.get(key, 0)}
        for key, label in EducationalContent.CATEGORY_CHOICES
    ]


def stats() -> dict[str, Any]:
    qs = published()
    most_viewed = qs.order_by('-views', 'id')[:5]
    return {
        'total_content': qs.count(),
        'total_views': total_views(),
        'by_category': dict(qs.values_list('category').annotate(n=Count('id')).order_by()),
        'most_viewed': [
            {'id': c.id, 'title_en': c.title_en, 'title_fil': c.title_fil, 'category': c.category, 'views': c.views}
            for c in most_viewed
        ],
        'recent_count': qs.filter(updated_at__gte=timezone.now() - timedelta(days=30)).count(),
    }
