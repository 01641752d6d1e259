"""
Dashboard analytics.

Three audiences read these numbers: the national overview, the
clinician's own dashboard and the per-facility reports.  A clinician's
view is limited to assessments referred to their facility; users with
no facility see every assessment.

Reporting windows are whole local days, ``[start 00:00, end + 1 day)``.
Composite dashboards are cached for ``STATS_CACHE_SECONDS``.
"""
from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime, time, timedelta
from math import ceil
from typing import Any, Optional

from django.conf import settings
from django.core.cache import cache
from django.db.models import (
    Avg, Case, Count, DurationField, ExpressionWrapper, F, IntegerField, Max, Min, Prefetch, Q, When,
)
from django.db.models.functions import TruncDate
from django.utils import timezone

from core.models import Assessment, ClinicalValidation, HealthcareFacility, Referral, User

logger = logging.getLogger(__name__)

NATIONAL_WINDOW_DAYS = 90
CLINICAL_WINDOW_DAYS = 30
QUEUE_LIMIT = 50
HIGH_RISK_LIST_LIMIT = 10
TOP_LIMIT = 10
CRITICAL_PENDING_HOURS = 24
AGE_BUCKETS = ('< 30', '30-39', '40-49', '50-59', '60+')
ACTIVE_REFERRAL_STATUSES = ('accepted', 'in_transit', 'arrived', 'in_progress')
STAFF_ROLES = ('doctor', 'nurse')


def window(start: Optional[date] = None, end: Optional[date] = None,
           days: int = NATIONAL_WINDOW_DAYS) -> tuple[datetime, datetime]:
    end = end or timezone.localdate()
    start = start or end - timedelta(days=days)
    return (timezone.make_aware(datetime.combine(start, time.min)),
            timezone.make_aware(datetime.combine(end + timedelta(days=1), time.min)))


def _key(prefix: str, start: datetime, end: datetime, scope: Any = '') -> str:
    return f'analytics:{prefix}:{scope}:{start.date().isoformat()}:{end.date().isoformat()}'


def _cached(key: str, build) -> dict[str, Any]:
    data = cache.get(key)
    if data is None:
        logger.debug('rebuilding %s', key)
        data = build()
        cache.set(key, data, settings.STATS_CACHE_SECONDS)
    return data


def _pct(part, whole, digits: int = 1) -> float:
    return round(part / whole * 100, digits) if whole else 0


def _span(end_field: str, start_field: str):
    return ExpressionWrapper(F(end_field) - F(start_field), output_field=DurationField())


def _avg_span(qs, end_field: str, start_field: str) -> Optional[timedelta]:
    return qs.aggregate(avg=Avg(_span(end_field, start_field)))['avg']


def _hours(td: Optional[timedelta]) -> Optional[float]:
    return round(td.total_seconds() / 3600, 1) if td is not None else None


def _age(dob: Optional[date], today: date) -> Optional[int]:
    if dob is None:
        return None
    return today.year - dob.year - ((today.month, today.day) < (dob.month, dob.day))


def age_bucket(age: int) -> str:
    if age < 30:
        return '< 30'
    if age < 40:
        return '30-39'
    if age < 50:
        return '40-49'
    if age < 60:
        return '50-59'
    return '60+'


def trend_direction(totals: list[int]) -> str:
    """Compare the mean of the first and second half of a daily series."""
    if len(totals) < 2:
        return 'stable'
    n = len(totals)
    first = totals[:ceil(n / 2)]
    last = totals[n // 2:]
    before, after = sum(first) / len(first), sum(last) / len(last)
    if after > before * 1.1:
        return 'increasing'
    if after < before * 0.9:
        return 'decreasing'
    return 'stable'


def _by_risk(qs) -> dict[str, int]:
    rows = qs.order_by().values_list('final_risk_level').annotate(n=Count('id'))
    return {level or 'Unknown': n for level, n in rows}


def _daily_risk(qs, field: str = 'assessment_date'):
    return (qs.annotate(day=TruncDate(field)).values('day')
            .annotate(total=Count('id'),
                      high_risk=Count('id', filter=Q(final_risk_level='High')),
                      moderate_risk=Count('id', filter=Q(final_risk_level='Moderate')),
                      low_risk=Count('id', filter=Q(final_risk_level='Low')),
                      avg_score=Avg('ml_risk_score'))
            .order_by('day'))


def _days_pending(a: Assessment, now: datetime) -> int:
    return (now - (a.synced_at or a.created_at)).days


def _referrals():
    return Referral.objects.filter(deleted_at__isnull=True)


# National overview

def assessments_between(start: datetime, end: datetime):
    return Assessment.objects.filter(assessment_date__gte=start, assessment_date__lt=end)


def summary_metrics(start: datetime, end: datetime) -> dict[str, Any]:
    qs = assessments_between(start, end)
    previous = assessments_between(start - (end - start), start)
    total, previous_total = qs.count(), previous.count()
    high = qs.filter(final_risk_level='High').count()
    avg_score = qs.aggregate(v=Avg('ml_risk_score'))['v'] or 0
    previous_avg = previous.aggregate(v=Avg('ml_risk_score'))['v'] or 0
    pending = _referrals().filter(status='pending').count()
    completed = _referrals().filter(status='completed', created_at__gte=start, created_at__lt=end).count()
    return {
        'total_assessments': total,
        'assessments_change': _pct(total - previous_total, previous_total),
        'high_risk_cases': high,
        'high_risk_percentage': _pct(high, total),
        'average_risk_score': round(avg_score, 1),
        'risk_score_change': round(avg_score - previous_avg, 1),
        'pending_referrals': pending,
        'completed_referrals': completed,
        'referral_completion_rate': _pct(completed, pending + completed),
        'active_facilities': HealthcareFacility.objects.filter(is_active=True).count(),
    }


def risk_distribution(start: datetime, end: datetime) -> dict[str, Any]:
    data = _by_risk(assessments_between(start, end))
    total = sum(data.values())
    return {
        'data': data,
        'percentages': {level: _pct(n, total) for level, n in data.items()},
        'total': total,
    }


def geographic_distribution(start: datetime, end: datetime) -> list[dict[str, Any]]:
    rows = (assessments_between(start, end).values('region', 'city')
            .annotate(total=Count('id'), high=Count('id', filter=Q(final_risk_level='High')))
            .order_by('-total', 'region', 'city'))
    regions: dict[str, dict[str, Any]] = {}
    for row in rows:
        name = row['region'] or 'Unknown'
        entry = regions.setdefault(name, {'region': name, 'total_assessments': 0, 'high_risk_count': 0,
                                          'cities': []})
        entry['total_assessments'] += row['total']
        entry['high_risk_count'] += row['high']
        entry['cities'].append({'city': row['city'] or 'Unknown', 'count': row['total']})
    result = sorted(regions.values(), key=lambda r: (-r['total_assessments'], r['region']))
    for entry in result:
        entry['high_risk_percentage'] = _pct(entry['high_risk_count'], entry['total_assessments'])
    return result


def trend_analysis(start: datetime, end: datetime) -> dict[str, Any]:
    daily = [
        {
            'date': row['day'].isoformat(),
            'total': row['total'],
            'high_risk': row['high_risk'],
            'moderate_risk': row['moderate_risk'],
            'low_risk': row['low_risk'],
            'avg_score': round(row['avg_score'] or 0, 1),
        }
        for row in _daily_risk(assessments_between(start, end))
    ]
    return {
        'daily_assessments': daily,
        'peak_day': max(daily, key=lambda d: d['total']) if daily else None,
        'trend_direction': trend_direction([d['total'] for d in daily]),
    }


def demographics(start: datetime, end: datetime) -> dict[str, Any]:
    today = timezone.localdate()
    qs = assessments_between(start, end)
    ages: Counter = Counter()
    high_by_age: Counter = Counter()
    for dob, level in qs.filter(patient_date_of_birth__isnull=False).values_list('patient_date_of_birth',
                                                                                   'final_risk_level'):
        bucket = age_bucket(_age(dob, today))
        ages[bucket] += 1
        if level == 'High':
            high_by_age[bucket] += 1
    sexes = qs.exclude(patient_sex='').order_by().values_list('patient_sex').annotate(n=Count('id'))
    return {
        'age_distribution': {b: ages[b] for b in AGE_BUCKETS},
        'sex_distribution': {sex.lower(): n for sex, n in sexes},
        'high_risk_by_age': {b: high_by_age[b] for b in AGE_BUCKETS},
    }


def system_health() -> dict[str, Any]:
    total = Assessment.objects.count()
    validated = Assessment.objects.filter(status=Assessment.STATUS_VALIDATED).count()
    avg = _avg_span(Assessment.objects.filter(validated_at__isnull=False, synced_at__isnull=False),
                    'validated_at', 'synced_at')
    referrals = _referrals()
    return {
        'validation_rate': _pct(validated, total),
        'avg_validation_time_hours': _hours(avg),
        'referral_acceptance_rate': _pct(referrals.filter(accepted_at__isnull=False).count(), referrals.count()),
        'active_users_today': User.objects.filter(last_login__date=timezone.localdate()).count(),
    }


def real_time_metrics() -> dict[str, int]:
    today = timezone.localdate()
    week_start = today - timedelta(days=today.weekday())
    qs = Assessment.objects.all()
    return {
        'total': qs.count(),
        'today': qs.filter(assessment_date__date=today).count(),
        'this_week': qs.filter(assessment_date__date__gte=week_start,
                               assessment_date__date__lt=week_start + timedelta(days=7)).count(),
        'this_month': qs.filter(assessment_date__year=today.year, assessment_date__month=today.month).count(),
        'pending_validation': qs.filter(status=Assessment.STATUS_PENDING).count(),
    }


def national_overview(start: datetime, end: datetime) -> dict[str, Any]:
    return _cached(_key('national', start, end), lambda: {
        'summary': summary_metrics(start, end),
        'risk_distribution': risk_distribution(start, end),
        'geographic_distribution': geographic_distribution(start, end),
        'trends': trend_analysis(start, end),
        'demographics': demographics(start, end),
        'system_health': system_health(),
    })


# Clinical dashboard

def facility_referrals(user: User):
    qs = _referrals()
    if user.facility_id:
        qs = qs.filter(target_facility_id=user.facility_id)
    return qs


def facility_assessments(user: User):
    qs = Assessment.objects.all()
    if user.facility_id:
        qs = qs.filter(pk__in=facility_referrals(user).values('assessment_id'))
    return qs


def _with_latest_referral(qs):
    return qs.prefetch_related(Prefetch('referrals', queryset=_referrals().order_by('-created_at', '-id')))


def assessment_queue(user: User, *, status: str = Assessment.STATUS_PENDING, risk_level: Optional[str] = None,
                     priority: Optional[str] = None) -> dict[str, Any]:
    """Assessments awaiting review, highest risk first, then newest."""
    now = timezone.now()
    today = timezone.localdate()
    scoped = facility_assessments(user)
    qs = scoped.filter(status=status)
    if risk_level:
        qs = qs.filter(final_risk_level=risk_level)
    if priority:
        qs = qs.filter(pk__in=facility_referrals(user).filter(priority=priority).values('assessment_id'))
    qs = qs.annotate(risk_rank=Case(
        When(final_risk_level='High', then=1),
        When(final_risk_level='Moderate', then=2),
        When(final_risk_level='Low', then=3),
        default=4, output_field=IntegerField(),
    )).order_by('risk_rank', '-assessment_date', '-id')[:QUEUE_LIMIT]

    items = []
    for a in _with_latest_referral(qs):
        referral = next(iter(a.referrals.all()), None)
        items.append({
            'id': a.id,
            'assessment_external_id': a.assessment_external_id,
            'patient_name': a.patient_name,
            'patient_age': _age(a.patient_date_of_birth, today),
            'patient_sex': a.patient_sex,
            'risk_level': a.final_risk_level,
            'ml_score': a.ml_risk_score,
            'final_score': a.final_risk_score,
            'assessment_date': a.assessment_date.isoformat(),
            'days_pending': _days_pending(a, now),
            'priority': referral.priority if referral else None,
            'urgency': referral.urgency if referral else None,
            'chief_complaint': referral.chief_complaint if referral else None,
        })

    pending = scoped.filter(status=Assessment.STATUS_PENDING)
    urgent_ids = facility_referrals(user).filter(urgency__in=('Urgent', 'Emergency')).values('assessment_id')
    waits = [(now - (synced or created)).total_seconds() / 3600
             for synced, created in pending.values_list('synced_at', 'created_at')]
    return {
        'assessments': items,
        'summary': {
            'total_pending': len(waits),
            'high_risk_pending': pending.filter(final_risk_level='High').count(),
            'urgent_count': pending.filter(pk__in=urgent_ids).count(),
            'avg_wait_time_hours': round(sum(waits) / len(waits), 1) if waits else 0,
        },
    }


def risk_stratification(user: User, start: datetime, end: datetime) -> dict[str, Any]:
    now = timezone.now()
    today = timezone.localdate()
    scoped = facility_assessments(user)
    in_window = scoped.filter(assessment_date__gte=start, assessment_date__lt=end)
    trends = [
        {'date': row['day'].isoformat(), 'high_risk': row['high_risk'], 'moderate_risk': row['moderate_risk'],
         'low_risk': row['low_risk']}
        for row in _daily_risk(in_window)
    ]
    urgent = (scoped.filter(final_risk_level='High', status=Assessment.STATUS_PENDING)
              .order_by('-ml_risk_score', 'assessment_date')[:HIGH_RISK_LIST_LIMIT])
    return {
        'risk_distribution': _by_risk(in_window),
        'risk_trends': trends,
        'high_risk_patients': [
            {'id': a.id, 'patient_name': a.patient_name, 'age': _age(a.patient_date_of_birth, today),
             'risk_score': a.ml_risk_score, 'days_pending': _days_pending(a, now)}
            for a in urgent
        ],
    }


def clinical_alerts(user: User) -> list[dict[str, Any]]:
    now = timezone.now()
    cutoff = now - timedelta(hours=CRITICAL_PENDING_HOURS)
    referrals = facility_referrals(user)
    alerts = []

    critical = facility_assessments(user).filter(
        Q(synced_at__lt=cutoff) | Q(synced_at__isnull=True, created_at__lt=cutoff),
        final_risk_level='High', status=Assessment.STATUS_PENDING,
    ).count()
    if critical:
        alerts.append({'type': 'critical', 'title': 'Critical Assessments Pending',
                       'message': f'{critical} high-risk assessments pending for more than '
                                  f'{CRITICAL_PENDING_HOURS} hours',
                       'count': critical, 'action': 'Review Now'})

    urgent = referrals.filter(status='pending', urgency__in=('Urgent', 'Emergency')).count()
    if urgent:
        alerts.append({'type': 'urgent', 'title': 'Urgent Referrals',
                       'message': f'{urgent} urgent referrals awaiting response',
                       'count': urgent, 'action': 'Review Referrals'})

    overdue_cutoff = now - timedelta(hours=settings.REFERRAL_OVERDUE_HOURS)
    overdue = referrals.filter(status='pending', created_at__lt=overdue_cutoff).count()
    if overdue:
        alerts.append({'type': 'warning', 'title': 'Overdue Referrals',
                       'message': f'{overdue} referrals pending for more than '
                                  f'{settings.REFERRAL_OVERDUE_HOURS} hours',
                       'count': overdue, 'action': 'Review Referrals'})

    follow_ups = referrals.filter(requires_follow_up=True, follow_up_date__lte=timezone.localdate(),
                                  status='completed').count()
    if follow_ups:
        alerts.append({'type': 'info', 'title': 'Follow-ups Due',
                       'message': f'{follow_ups} patients require follow-up assessments',
                       'count': follow_ups, 'action': 'View Patients'})
    return alerts


def productivity_score(validated: int, avg_hours: Optional[float]) -> int:
    """Up to 50 points for volume and 50 for turnaround (24h earns full marks)."""
    volume = min(validated * 2, 50)
    speed = min(24 / avg_hours * 50, 50) if avg_hours else 0
    return round(volume + speed)


def workload(user: User, start: datetime, end: datetime) -> dict[str, Any]:
    now = timezone.now()
    mine = Assessment.objects.filter(validated_by=user)
    in_window = mine.filter(validated_at__gte=start, validated_at__lt=end)
    validated = in_window.count()
    avg_hours = _hours(_avg_span(in_window.filter(synced_at__isnull=False), 'validated_at', 'synced_at'))
    weekly = (mine.filter(validated_at__gte=now - timedelta(days=7))
              .annotate(day=TruncDate('validated_at')).values('day').annotate(count=Count('id')).order_by('day'))
    return {
        'total_validated': validated,
        'avg_validation_time_hours': avg_hours,
        'today_validated': mine.filter(validated_at__date=timezone.localdate()).count(),
        'today_pending': facility_assessments(user).filter(status=Assessment.STATUS_PENDING).count(),
        'weekly_trend': [{'date': row['day'].isoformat(), 'count': row['count']} for row in weekly],
        'productivity_score': productivity_score(validated, avg_hours),
    }


def validation_metrics(user: User, start: datetime, end: datetime) -> dict[str, Any]:
    qs = ClinicalValidation.objects.filter(validator=user, created_at__gte=start, created_at__lt=end)
    distribution = dict(qs.order_by().values_list('agreement_level').annotate(n=Count('id')))
    total = sum(distribution.values())
    spread = qs.filter(score_difference__isnull=False).aggregate(
        avg=Avg('score_difference'), low=Min('score_difference'), high=Max('score_difference'),
    )
    return {
        'total_validations': total,
        'agreement_distribution': distribution,
        'ml_agreement_rate': _pct(distribution.get('complete_agreement', 0), total),
        'avg_score_adjustment': round(spread['avg'] or 0, 2),
        'adjustment_range': {'min': spread['low'] or 0, 'max': spread['high'] or 0},
    }


def treatment_outcomes(user: User, start: datetime, end: datetime) -> dict[str, Any]:
    completed = facility_referrals(user).filter(status='completed', completed_at__gte=start, completed_at__lt=end)
    avg = _avg_span(completed.filter(accepted_at__isnull=False), 'completed_at', 'accepted_at')
    follow_up = completed.filter(requires_follow_up=True)
    # a completed appointment after the referral closed counts as the follow-up visit
    returned = follow_up.filter(appointments__status='completed',
                                appointments__completed_at__gt=F('completed_at')).distinct().count()
    required = follow_up.count()
    outcomes = completed.exclude(outcome='').order_by().values_list('outcome').annotate(n=Count('id'))
    return {
        'completed_referrals': completed.count(),
        'avg_treatment_time_days': round(avg.total_seconds() / 86400, 1) if avg is not None else None,
        'outcome_distribution': dict(outcomes),
        'follow_up_required': required,
        'follow_up_completed': returned,
        'follow_up_compliance_rate': _pct(returned, required),
    }


def clinical_dashboard(user: User, start: datetime, end: datetime) -> dict[str, Any]:
    return _cached(_key('clinical', start, end, user.pk), lambda: {
        'assessment_queue': assessment_queue(user),
        'patient_risk_stratification': risk_stratification(user, start, end),
        'clinical_alerts': clinical_alerts(user),
        'workload_metrics': workload(user, start, end),
        'validation_metrics': validation_metrics(user, start, end),
        'treatment_outcomes': treatment_outcomes(user, start, end),
    })


# Facility reports

def incoming(facility_id: int, start: datetime, end: datetime):
    return _referrals().filter(target_facility_id=facility_id, created_at__gte=start, created_at__lt=end)


def facility_summary(facility_id: int, start: datetime, end: datetime) -> dict[str, Any]:
    f = HealthcareFacility.objects.get(pk=facility_id)
    received = incoming(f.id, start, end)
    mine = _referrals().filter(target_facility_id=f.id)
    return {
        'facility_name': f.name,
        'facility_type': f.type,
        'assessments_processed': received.values('assessment_id').distinct().count(),
        'active_patients': mine.filter(status__in=ACTIVE_REFERRAL_STATUSES).count(),
        'pending_referrals': mine.filter(status='pending').count(),
        'avg_response_time_hours': _hours(_avg_span(received.filter(accepted_at__isnull=False),
                                                    'accepted_at', 'created_at')),
        'bed_capacity': f.bed_capacity,
        'available_beds': f.current_bed_availability,
        'bed_occupancy_percentage': f.bed_occupancy_percentage or 0,
    }


def patient_flow(facility_id: int, start: datetime, end: datetime) -> dict[str, Any]:
    """Daily intake.  A referral counts as admitted once it has been accepted."""
    f = HealthcareFacility.objects.get(pk=facility_id)
    received = incoming(f.id, start, end)
    rows = (received.annotate(day=TruncDate('created_at')).values('day')
            .annotate(total_referrals=Count('id'),
                      accepted=Count('id', filter=Q(accepted_at__isnull=False)),
                      rejected=Count('id', filter=Q(status='rejected')),
                      pending=Count('id', filter=Q(status='pending')))
            .order_by('day'))
    daily = [
        {'date': row['day'].isoformat(), 'total_referrals': row['total_referrals'], 'accepted': row['accepted'],
         'rejected': row['rejected'], 'pending': row['pending']}
        for row in rows
    ]
    total = received.count()
    admitted = received.filter(accepted_at__isnull=False).count()
    return {
        'daily_flow': daily,
        'total_referrals_received': total,
        'admitted_patients': admitted,
        'admission_rate': _pct(admitted, total),
        'peak_day': max(daily, key=lambda d: d['total_referrals']) if daily else None,
    }


def referral_metrics(facility_id: int, start: datetime, end: datetime) -> dict[str, Any]:
    f = HealthcareFacility.objects.get(pk=facility_id)
    received = incoming(f.id, start, end)
    total = received.count()
    accepted = received.filter(accepted_at__isnull=False).count()
    rejected = received.filter(status='rejected').count()
    by_priority = (received.filter(accepted_at__isnull=False).values('priority')
                   .annotate(avg=Avg(_span('accepted_at', 'created_at')), count=Count('id'))
                   .order_by('priority'))
    sources = (received.filter(source_facility__isnull=False)
               .values('source_facility_id', 'source_facility__name')
               .annotate(count=Count('id')).order_by('-count', 'source_facility__name')[:TOP_LIMIT])
    return {
        'total_referrals': total,
        'accepted_referrals': accepted,
        'rejected_referrals': rejected,
        'acceptance_rate': _pct(accepted, total),
        'rejection_rate': _pct(rejected, total),
        'response_time_by_priority': [
            {'priority': row['priority'], 'avg_response_hours': _hours(row['avg']), 'count': row['count']}
            for row in by_priority
        ],
        'top_referral_sources': [
            {'facility_id': row['source_facility_id'], 'name': row['source_facility__name'], 'count': row['count']}
            for row in sources
        ],
    }


def capacity_metrics(facility_id: int, start: datetime, end: datetime) -> dict[str, Any]:
    f = HealthcareFacility.objects.get(pk=facility_id)
    staff = User.objects.filter(facility_id=f.id, role__in=STAFF_ROLES, is_active=True).count()
    active = (incoming(f.id, start, end).filter(status__in=ACTIVE_REFERRAL_STATUSES)
              .values('assessment_id').distinct().count())
    return {
        'bed_capacity': f.bed_capacity,
        'available_beds': f.current_bed_availability,
        'occupied_beds': max(f.bed_capacity - f.current_bed_availability, 0),
        'occupancy_percentage': f.bed_occupancy_percentage or 0,
        'icu_capacity': f.icu_capacity,
        'staff_count': staff,
        'active_patients': active,
        'patients_per_staff': round(active / staff, 1) if staff else 0,
    }


def staff_productivity(facility_id: int, start: datetime, end: datetime) -> dict[str, Any]:
    f = HealthcareFacility.objects.get(pk=facility_id)
    referred = _referrals().filter(target_facility_id=f.id).values('assessment_id')
    rows = (Assessment.objects.filter(pk__in=referred, validated_by__isnull=False,
                                      validated_at__gte=start, validated_at__lt=end)
            .values('validated_by_id', 'validated_by__username', 'validated_by__first_name',
                    'validated_by__last_name')
            .annotate(validations_count=Count('id'), avg=Avg(_span('validated_at', 'synced_at')))
            .order_by('-validations_count', 'validated_by_id')[:TOP_LIMIT])
    doctors = [
        {
            'doctor_id': row['validated_by_id'],
            'doctor_name': (f"{row['validated_by__first_name']} {row['validated_by__last_name']}".strip()
                            or row['validated_by__username']),
            'validations_count': row['validations_count'],
            'avg_validation_hours': _hours(row['avg']),
        }
        for row in rows
    ]
    total = sum(d['validations_count'] for d in doctors)
    return {
        'doctor_productivity': doctors,
        'total_validations': total,
        'avg_validations_per_doctor': round(total / len(doctors), 1) if doctors else 0,
        'top_performer': doctors[0] if doctors else None,
    }


def performance_comparison(facility_id: int, start: datetime, end: datetime) -> dict[str, Any]:
    """Acceptance rate and response time against active facilities of the same type."""
    f = HealthcareFacility.objects.get(pk=facility_id)
    peers = HealthcareFacility.objects.filter(type=f.type, is_active=True).values('id')
    rows = (_referrals().filter(target_facility_id__in=peers, created_at__gte=start, created_at__lt=end)
            .values('target_facility_id')
            .annotate(total=Count('id'), accepted=Count('id', filter=Q(accepted_at__isnull=False)),
                      avg=Avg(_span('accepted_at', 'created_at')))
            .order_by('target_facility_id'))
    rates = {row['target_facility_id']: _pct(row['accepted'], row['total']) for row in rows}
    times = {row['target_facility_id']: _hours(row['avg']) for row in rows if row['avg'] is not None}
    ranking = [fid for fid, _ in sorted(rates.items(), key=lambda kv: (-kv[1], kv[0]))]
    return {
        'acceptance_rate': {
            'this_facility': rates.get(f.id, 0),
            'average_for_type': round(sum(rates.values()) / len(rates), 1) if rates else 0,
            'rank': ranking.index(f.id) + 1 if f.id in rates else None,
            'total_facilities': len(rates),
        },
        'avg_response_time': {
            'this_facility': times.get(f.id),
            'average_for_type': round(sum(times.values()) / len(times), 1) if times else None,
        },
        'facility_type': f.type,
    }


def facility_dashboard(facility_id: int, start: datetime, end: datetime) -> dict[str, Any]:
    f = HealthcareFacility.objects.get(pk=facility_id)
    return _cached(_key('facility', start, end, f.id), lambda: {
        'summary': facility_summary(f.id, start, end),
        'patient_flow': patient_flow(f.id, start, end),
        'referral_metrics': referral_metrics(f.id, start, end),
        'capacity_utilization': capacity_metrics(f.id, start, end),
        'staff_productivity': staff_productivity(f.id, start, end),
        'performance_comparison': performance_comparison(f.id, start, end),
    })
