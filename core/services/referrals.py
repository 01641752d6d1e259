"""
Referral lifecycle.

Every status change goes through :func:`core.services.transitions.ensure_transition`
inside a locked transaction, stamps the matching ``<status>_at`` column and
appends a :class:`ReferralHistory` row.  The statistics cache is dropped
with the change and dashboards are told to refresh once it commits.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Optional

from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.db.models import Avg, Count, DurationField, ExpressionWrapper, F, Q
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from core.exceptions import TransitionError
from core.models import Appointment, Assessment, HealthcareFacility, Referral, ReferralHistory, User
from core.services.appointments import conflicts, new_token
from core.services import notifications
from core.services.audit import log_action, request_context
from core.services.realtime import broadcast
from core.services.risk import (
    facility_level, referral_priority, referral_type, referral_urgency, required_services,
)
from core.services.transitions import ensure_transition, is_terminal

logger = logging.getLogger(__name__)

STATS_CACHE_KEY = 'referrals:statistics'
PRIORITY_ORDER = ['Low', 'Medium', 'High', 'Critical']
CLINICAL_ROLES = ('super', 'admin', 'doctor')

# Column stamped when a referral enters each status
STATUS_TIMESTAMPS = {
    Referral.STATUS_ACCEPTED: 'accepted_at',
    Referral.STATUS_IN_TRANSIT: 'in_transit_at',
    Referral.STATUS_ARRIVED: 'arrived_at',
    Referral.STATUS_IN_PROGRESS: 'in_progress_at',
    Referral.STATUS_COMPLETED: 'completed_at',
    Referral.STATUS_REJECTED: 'rejected_at',
    Referral.STATUS_CANCELLED: 'cancelled_at',
}

SORT_FIELDS = {'created_at', 'updated_at', 'priority', 'urgency', 'status', 'patient_last_name'}


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def _facility_brief(f: Optional[HealthcareFacility]) -> Optional[dict]:
    if f is None:
        return None
    return {'id': f.id, 'name': f.name, 'code': f.code, 'type': f.type, 'level': f.level, 'city': f.city}


def _user_brief(u: Optional[User]) -> Optional[dict]:
    if u is None:
        return None
    return {'id': u.id, 'username': u.username, 'name': u.get_full_name() or u.username, 'role': u.role}


def format_history(h: ReferralHistory) -> dict[str, Any]:
    return {
        'id': h.id,
        'action': h.action,
        'action_description': h.action_description,
        'previous_status': h.previous_status,
        'new_status': h.new_status,
        'notes': h.notes,
        'metadata': h.metadata,
        'user': _user_brief(h.user),
        'created_at': _iso(h.created_at),
    }


def format_referral(r: Referral, detail: bool = False) -> dict[str, Any]:
    data: dict[str, Any] = {
        'id': r.id,
        'assessment_id': r.assessment_id,
        'patient_name': r.patient_name,
        'patient_first_name': r.patient_first_name,
        'patient_last_name': r.patient_last_name,
        'patient_sex': r.patient_sex,
        'source_facility': _facility_brief(r.source_facility),
        'target_facility': _facility_brief(r.target_facility),
        'referring_user': _user_brief(r.referring_user),
        'assigned_doctor': _user_brief(r.assigned_doctor),
        'priority': r.priority,
        'urgency': r.urgency,
        'referral_type': r.referral_type,
        'chief_complaint': r.chief_complaint,
        'status': r.status,
        'is_overdue': r.is_overdue,
        'scheduled_appointment': _iso(r.scheduled_appointment),
        'accepted_at': _iso(r.accepted_at),
        'completed_at': _iso(r.completed_at),
        'created_at': _iso(r.created_at),
        'updated_at': _iso(r.updated_at),
    }
    if detail:
        data.update({
            'patient_date_of_birth': _iso(r.patient_date_of_birth),
            'patient_phone': r.patient_phone,
            'clinical_notes': r.clinical_notes,
            'required_services': r.required_services,
            'status_notes': r.status_notes,
            'rejection_reason': r.rejection_reason,
            'in_transit_at': _iso(r.in_transit_at),
            'arrived_at': _iso(r.arrived_at),
            'in_progress_at': _iso(r.in_progress_at),
            'rejected_at': _iso(r.rejected_at),
            'cancelled_at': _iso(r.cancelled_at),
            'appointment_notes': r.appointment_notes,
            'transport_method': r.transport_method,
            'transport_notes': r.transport_notes,
            'estimated_travel_time_minutes': r.estimated_travel_time_minutes,
            'requires_follow_up': r.requires_follow_up,
            'follow_up_date': _iso(r.follow_up_date),
            'follow_up_notes': r.follow_up_notes,
            'treatment_summary': r.treatment_summary,
            'diagnosis': r.diagnosis,
            'recommendations': r.recommendations,
            'outcome': r.outcome,
            'response_time_hours': r.response_time_hours,
            'processing_days': r.processing_days,
            'assessment': {
                'id': r.assessment.id,
                'final_risk_score': r.assessment.final_risk_score,
                'final_risk_level': r.assessment.final_risk_level,
                'status': r.assessment.status,
            },
            'history': [format_history(h) for h in r.history.select_related('user')],
        })
    return data


def active_referrals():
    return Referral.objects.filter(deleted_at__isnull=True).select_related(
        'source_facility', 'target_facility', 'referring_user', 'assigned_doctor', 'assessment'
    )


def get_referral(referral_id: int) -> Referral:
    return active_referrals().get(pk=referral_id)


def filter_referrals(*, status=None, priority=None, urgency=None, target_facility_id=None,
                     source_facility_id=None, assigned_doctor_id=None, search=None,
                     date_from=None, date_to=None, sort_by='created_at', sort_order='desc'):
    qs = active_referrals()
    if status:
        qs = qs.filter(status=status)
    if priority:
        qs = qs.filter(priority=priority)
    if urgency:
        qs = qs.filter(urgency=urgency)
    if target_facility_id:
        qs = qs.filter(target_facility_id=target_facility_id)
    if source_facility_id:
        qs = qs.filter(source_facility_id=source_facility_id)
    if assigned_doctor_id:
        qs = qs.filter(assigned_doctor_id=assigned_doctor_id)
    if search:
        qs = qs.filter(
            Q(patient_first_name__icontains=search)
            | Q(patient_last_name__icontains=search)
            | Q(chief_complaint__icontains=search)
        )
    if date_from:
        qs = qs.filter(created_at__date__gte=date_from)
    if date_to:
        qs = qs.filter(created_at__date__lte=date_to)
    field = sort_by if sort_by in SORT_FIELDS else 'created_at'
    prefix = '' if sort_order == 'asc' else '-'
    return qs.order_by(f'{prefix}{field}', f'{prefix}id')


def _record(r: Referral, user, action: str, description: str, *, previous: str = '', notes: str = '',
            metadata: Optional[dict] = None, request=None) -> ReferralHistory:
    return ReferralHistory.objects.create(
        referral=r,
        user=user if getattr(user, 'pk', None) else None,
        action=action,
        action_description=description,
        previous_status=previous,
        new_status=r.status,
        notes=notes or '',
        metadata=metadata or {},
        **request_context(request),
    )


def _after_change(r: Referral, event: str) -> None:
    cache.delete(STATS_CACHE_KEY)
    status = r.status
    transaction.on_commit(lambda: broadcast(event, referral_id=r.id, status=status))


def _lock(referral_id: int) -> Referral:
    return Referral.objects.select_for_update().filter(deleted_at__isnull=True).get(pk=referral_id)


def _move(r: Referral, new_status: str) -> str:
    """Apply a checked status move in memory and return the previous status."""
    ensure_transition('referral', r.status, new_status)
    previous = r.status
    r.status = new_status
    column = STATUS_TIMESTAMPS.get(new_status)
    if column:
        setattr(r, column, timezone.now())
    return previous


def best_facility(score: int, exclude_id: Optional[int] = None) -> Optional[HealthcareFacility]:
    """Pick a target facility for a score: matching level first, then anything accepting referrals."""
    qs = HealthcareFacility.objects.filter(is_active=True, accepts_referrals=True)
    if exclude_id:
        qs = qs.exclude(pk=exclude_id)
    qs = qs.order_by('-has_emergency', 'average_response_time_hours', 'id')
    return qs.filter(level=facility_level(score)).first() or qs.first()


def _notify_facility_staff(r: Referral, title: str, body: str) -> None:
    staff = User.objects.filter(
        facility_id=r.target_facility_id, role__in=CLINICAL_ROLES, status='active', is_active=True,
    )
    if not staff.exists():
        return
    notifications.send_bulk(
        staff, 'referral', title, body,
        channels=['in_app', 'email'],
        data={'referral_id': r.id, 'related_referral_id': r.id, 'action_url': f'/referrals/{r.id}'},
        priority='critical' if r.priority == 'Critical' else 'high' if r.priority == 'High' else 'normal',
    )


def _notify_referrer(r: Referral, title: str, body: str) -> None:
    if r.referring_user_id is None:
        return
    notifications.send(
        r.referring_user, 'referral', title, body,
        channels=['in_app'],
        data={'referral_id': r.id, 'related_referral_id': r.id, 'action_url': f'/referrals/{r.id}'},
    )


def create_referral(user: User, data: dict[str, Any], request=None) -> Referral:
    """Create a referral from an assessment.

    Priority, urgency, referral type, required services and the target
    facility are derived from the assessment score unless given.
    """
    with transaction.atomic():
        assessment = Assessment.objects.select_for_update().get(pk=data['assessment_id'])
        if assessment.status == Assessment.STATUS_REJECTED:
            raise ValidationError({'assessment_id': ['Cannot refer a rejected assessment.']})
        score = assessment.final_risk_score or assessment.ml_risk_score or 0

        source_id = data.get('source_facility_id') or getattr(user, 'facility_id', None)
        target_id = data.get('target_facility_id')
        if target_id:
            target = HealthcareFacility.objects.get(pk=target_id)
            if not (target.is_active and target.accepts_referrals):
                raise ValidationError({'target_facility_id': ['Facility is not accepting referrals.']})
        else:
            target = best_facility(score, exclude_id=source_id)
            if target is None:
                raise ValidationError({'target_facility_id': ['No facility is accepting referrals.']})

        r = Referral.objects.create(
            assessment=assessment,
            patient_first_name=data.get('patient_first_name') or assessment.patient_first_name,
            patient_last_name=data.get('patient_last_name') or assessment.patient_last_name,
            patient_date_of_birth=assessment.patient_date_of_birth,
            patient_sex=(assessment.patient_sex or '').capitalize() if assessment.patient_sex else '',
            patient_phone=assessment.patient_phone,
            source_facility_id=source_id,
            target_facility=target,
            referring_user=user,
            assigned_doctor_id=data.get('assigned_doctor_id'),
            priority=data.get('priority') or referral_priority(score),
            urgency=data.get('urgency') or referral_urgency(score, assessment.symptoms),
            referral_type=data.get('referral_type') or referral_type(score),
            chief_complaint=data.get('chief_complaint', ''),
            clinical_notes=data.get('clinical_notes', ''),
            required_services=data.get('required_services') or required_services(score),
            transport_method=data.get('transport_method', ''),
            estimated_travel_time_minutes=data.get('estimated_travel_time_minutes'),
        )
        assessment.status = Assessment.STATUS_REQUIRES_REFERRAL
        assessment.save(update_fields=['status', 'updated_at'])

        _record(r, user, 'created', f'Referral created to {target.name}',
                metadata={'priority': r.priority, 'urgency': r.urgency, 'score': score}, request=request)
        log_action(user=user, action='referral_create', object_type='referral', object_id=r.id,
                   detail={'target_facility_id': target.id, 'priority': r.priority})
        _after_change(r, 'referral.created')

    logger.info('referral %s created for assessment %s -> facility %s (%s)', r.id, assessment.id, target.id, r.priority)
    _notify_facility_staff(r, f'New {r.priority} referral', f'{r.patient_name} referred for {r.referral_type}.')
    return r


def accept_referral(referral_id: int, user: User, *, notes: str = '', assigned_doctor_id: Optional[int] = None,
                    scheduled_appointment=None, appointment_notes: str = '', request=None) -> Referral:
    with transaction.atomic():
        r = _lock(referral_id)
        previous = _move(r, Referral.STATUS_ACCEPTED)
        if assigned_doctor_id:
            r.assigned_doctor_id = assigned_doctor_id
        elif r.assigned_doctor_id is None:
            r.assigned_doctor = user
        r.status_notes = notes
        if scheduled_appointment:
            r.scheduled_appointment = scheduled_appointment
            r.appointment_notes = appointment_notes
        r.save()

        metadata: dict[str, Any] = {'assigned_doctor_id': r.assigned_doctor_id}
        if scheduled_appointment:
            appt = _upsert_appointment(r, user, scheduled_appointment, appointment_notes)
            metadata['appointment_id'] = appt.id
        _record(r, user, 'accepted', 'Referral accepted', previous=previous, notes=notes,
                metadata=metadata, request=request)
        log_action(user=user, action='referral_accept', object_type='referral', object_id=r.id, detail=metadata)
        _after_change(r, 'referral.accepted')

    logger.info('referral %s accepted by %s', r.id, user.pk)
    _notify_referrer(r, 'Referral accepted', f'{r.target_facility.name} accepted the referral for {r.patient_name}.')
    return r


def reject_referral(referral_id: int, user: User, *, reason: str, suggested_facilities=None, request=None) -> Referral:
    if not (reason or '').strip():
        raise ValidationError({'reason': ['This field is required.']})
    with transaction.atomic():
        r = _lock(referral_id)
        previous = _move(r, Referral.STATUS_REJECTED)
        r.rejection_reason = reason
        r.status_notes = reason
        r.save()
        metadata = {'suggested_facilities': list(suggested_facilities or [])}
        _record(r, user, 'rejected', 'Referral rejected', previous=previous, notes=reason,
                metadata=metadata, request=request)
        log_action(user=user, action='referral_reject', object_type='referral', object_id=r.id,
                   detail={'reason': reason, **metadata})
        _after_change(r, 'referral.rejected')

    logger.info('referral %s rejected by %s', r.id, user.pk)
    _notify_referrer(r, 'Referral rejected', f'{r.target_facility.name} declined the referral: {reason}')
    return r


def update_status(referral_id: int, user: User, *, status: str, notes: str = '', request=None) -> Referral:
    with transaction.atomic():
        r = _lock(referral_id)
        previous = _move(r, status)
        if notes:
            r.status_notes = notes
        if status == Referral.STATUS_CANCELLED and notes:
            r.rejection_reason = notes
        r.save()
        _record(r, user, 'status_changed', f'Status changed from {previous} to {status}',
                previous=previous, notes=notes, request=request)
        log_action(user=user, action='referral_status', object_type='referral', object_id=r.id,
                   detail={'from': previous, 'to': status})
        _after_change(r, 'referral.status_changed')
    logger.info('referral %s %s -> %s by %s', r.id, previous, status, user.pk)
    return r


def _upsert_appointment(r: Referral, user: User, when, notes: str = '') -> Appointment:
    appt = r.appointments.filter(status__in=Appointment.ACTIVE_STATUSES).order_by('-id').first()
    clashes = conflicts(start=when, duration_minutes=appt.duration_minutes if appt else 30,
                        doctor_id=r.assigned_doctor_id, facility_id=r.target_facility_id,
                        exclude_id=appt.id if appt else None)
    if clashes:
        raise ValidationError({'scheduled_appointment': ['The requested time slot is not available.']})
    if appt is None:
        token, expires = new_token()
        return Appointment.objects.create(
            referral=r,
            assessment=r.assessment,
            patient_first_name=r.patient_first_name,
            patient_last_name=r.patient_last_name,
            patient_date_of_birth=r.patient_date_of_birth,
            patient_sex=r.patient_sex,
            patient_phone=r.patient_phone,
            facility=r.target_facility,
            doctor=r.assigned_doctor,
            appointment_datetime=when,
            appointment_type='consultation',
            reason_for_visit=r.chief_complaint or r.referral_type,
            special_requirements=notes,
            booked_by=user,
            booking_source='web',
            confirmation_token=token,
            token_expires_at=expires,
        )
    appt.appointment_datetime = when
    appt.doctor = r.assigned_doctor
    if notes:
        appt.special_requirements = notes
    appt.save()
    return appt


def schedule_referral(referral_id: int, user: User, *, scheduled_appointment, notes: str = '', request=None) -> Referral:
    if scheduled_appointment <= timezone.now():
        raise ValidationError({'scheduled_appointment': ['Appointment must be in the future.']})
    with transaction.atomic():
        r = _lock(referral_id)
        if is_terminal('referral', r.status):
            raise TransitionError(r.status, 'scheduled', 'referral')
        r.scheduled_appointment = scheduled_appointment
        r.appointment_notes = notes
        r.save()
        appt = _upsert_appointment(r, user, scheduled_appointment, notes)
        _record(r, user, 'scheduled', f'Appointment scheduled for {scheduled_appointment:%Y-%m-%d %H:%M}',
                previous=r.status, notes=notes, metadata={'appointment_id': appt.id}, request=request)
        log_action(user=user, action='referral_schedule', object_type='referral', object_id=r.id,
                   detail={'appointment_id': appt.id})
        _after_change(r, 'referral.scheduled')
    return r


def complete_referral(referral_id: int, user: User, data: dict[str, Any], request=None) -> Referral:
    with transaction.atomic():
        r = _lock(referral_id)
        previous = _move(r, Referral.STATUS_COMPLETED)
        for field in ('treatment_summary', 'diagnosis', 'recommendations', 'outcome',
                      'requires_follow_up', 'follow_up_date', 'follow_up_notes'):
            if field in data:
                setattr(r, field, data[field])
        r.save()
        Assessment.objects.filter(pk=r.assessment_id).update(status=Assessment.STATUS_COMPLETED, updated_at=timezone.now())
        _record(r, user, 'completed', 'Referral completed', previous=previous,
                notes=data.get('treatment_summary', ''), metadata={'outcome': r.outcome}, request=request)
        log_action(user=user, action='referral_complete', object_type='referral', object_id=r.id,
                   detail={'outcome': r.outcome})
        _after_change(r, 'referral.completed')
    logger.info('referral %s completed (%s)', r.id, r.outcome or 'no outcome')
    _notify_referrer(r, 'Referral completed', f'Care for {r.patient_name} was completed at {r.target_facility.name}.')
    return r


def escalate_referral(referral_id: int, user: User, *, priority: str, reason: str, request=None) -> Referral:
    if not (reason or '').strip():
        raise ValidationError({'reason': ['This field is required.']})
    with transaction.atomic():
        r = _lock(referral_id)
        if is_terminal('referral', r.status):
            raise TransitionError(r.status, 'escalated', 'referral')
        if PRIORITY_ORDER.index(priority) <= PRIORITY_ORDER.index(r.priority):
            raise ValidationError({'priority': [f'Priority must be higher than {r.priority}.']})
        old = r.priority
        r.priority = priority
        r.save()
        _record(r, user, 'escalated', f'Priority escalated from {old} to {priority}', previous=r.status,
                notes=reason, metadata={'from': old, 'to': priority}, request=request)
        log_action(user=user, action='referral_escalate', object_type='referral', object_id=r.id,
                   detail={'from': old, 'to': priority, 'reason': reason})
        _after_change(r, 'referral.escalated')
    logger.info('referral %s escalated %s -> %s', r.id, old, priority)
    _notify_facility_staff(r, f'Referral escalated to {priority}', f'{r.patient_name}: {reason}')
    return r


def cancel_referral(referral_id: int, user: User, *, reason: str, request=None) -> Referral:
    if not (reason or '').strip():
        raise ValidationError({'reason': ['This field is required.']})
    with transaction.atomic():
        r = _lock(referral_id)
        previous = _move(r, Referral.STATUS_CANCELLED)
        r.status_notes = reason
        r.save()
        _record(r, user, 'cancelled', 'Referral cancelled', previous=previous, notes=reason, request=request)
        log_action(user=user, action='referral_cancel', object_type='referral', object_id=r.id,
                   detail={'reason': reason})
        _after_change(r, 'referral.cancelled')
    return r


def delete_referral(referral_id: int, user: User) -> None:
    with transaction.atomic():
        r = _lock(referral_id)
        r.deleted_at = timezone.now()
        r.save(update_fields=['deleted_at', 'updated_at'])
        log_action(user=user, action='referral_delete', object_type='referral', object_id=r.id)
        _after_change(r, 'referral.deleted')


def statistics() -> dict[str, Any]:
    cached = cache.get(STATS_CACHE_KEY)
    if cached:
        return cached
    qs = Referral.objects.filter(deleted_at__isnull=True)
    counts = dict(qs.values_list('status').annotate(n=Count('id')))
    total = sum(counts.values())
    accepted_like = total - counts.get('pending', 0) - counts.get('rejected', 0) - counts.get('cancelled', 0)
    decided = accepted_like + counts.get('rejected', 0)
    avg = qs.filter(accepted_at__isnull=False).aggregate(
        avg=Avg(ExpressionWrapper(F('accepted_at') - F('created_at'), output_field=DurationField()))
    )['avg']
    overdue_cutoff = timezone.now() - timedelta(hours=settings.REFERRAL_OVERDUE_HOURS)
    data = {
        'total': total,
        'pending': counts.get('pending', 0),
        'accepted': counts.get('accepted', 0),
        'in_progress': counts.get('in_progress', 0),
        'completed': counts.get('completed', 0),
        'rejected': counts.get('rejected', 0),
        'cancelled': counts.get('cancelled', 0),
        'acceptance_rate': round(accepted_like / decided * 100, 2) if decided else 0,
        'avg_response_time_hours': round(avg.total_seconds() / 3600, 2) if avg else None,
        'critical_pending': qs.filter(status='pending', priority='Critical').count(),
        'overdue': qs.filter(status='pending', created_at__lt=overdue_cutoff).count(),
    }
    cache.set(STATS_CACHE_KEY, data, settings.STATS_CACHE_SECONDS)
    return data
