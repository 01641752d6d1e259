"""
Appointment booking and the visit workflow.

A slot is taken by any active appointment (see ``Appointment.ACTIVE_STATUSES``)
of the same doctor (or of the same facility when no doctor is named)
whose window overlaps the requested one.
"""
from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from typing import Any, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Count
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from core.exceptions import Gone
from core.models import Appointment, User
from core.services import notifications
from core.services.audit import log_action
from core.services.realtime import broadcast
from core.services.transitions import ensure_transition

logger = logging.getLogger(__name__)

STATUS_TIMESTAMPS = {
    Appointment.STATUS_CONFIRMED: 'confirmed_at',
    Appointment.STATUS_CHECKED_IN: 'checked_in_at',
    Appointment.STATUS_IN_PROGRESS: 'started_at',
    Appointment.STATUS_COMPLETED: 'completed_at',
    Appointment.STATUS_CANCELLED: 'cancelled_at',
    Appointment.STATUS_RESCHEDULED: 'rescheduled_at',
}

# Fields copied onto the new appointment when one is rescheduled
CARRY_OVER = (
    'referral_id', 'assessment_id', 'mobile_user_id', 'patient_first_name', 'patient_last_name',
    'patient_date_of_birth', 'patient_sex', 'patient_phone', 'patient_email', 'facility_id', 'doctor_id',
    'duration_minutes', 'appointment_type', 'department', 'reason_for_visit', 'special_requirements',
    'booking_source',
)

BOOKABLE_FIELDS = {
    'mobile_appointment_id', 'mobile_user_id', 'referral_id', 'assessment_id',
    'patient_first_name', 'patient_last_name', 'patient_date_of_birth', 'patient_sex',
    'patient_phone', 'patient_email', 'facility_id', 'doctor_id', 'appointment_datetime',
    'appointment_type', 'department', 'reason_for_visit', 'special_requirements',
}


def new_token() -> tuple[str, Any]:
    hours = getattr(settings, 'APPOINTMENT_TOKEN_TTL_HOURS', 24)
    return secrets.token_urlsafe(32), timezone.now() + timedelta(hours=hours)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def format_appointment(a: Appointment, detail: bool = False) -> dict[str, Any]:
    data: dict[str, Any] = {
        'id': a.id,
        'mobile_appointment_id': a.mobile_appointment_id,
        'mobile_user_id': a.mobile_user_id,
        'referral_id': a.referral_id,
        'assessment_id': a.assessment_id,
        'patient_name': a.patient_name,
        'facility_id': a.facility_id,
        'facility_name': a.facility.name if a.facility_id else None,
        'doctor_id': a.doctor_id,
        'doctor_name': (a.doctor.get_full_name() or a.doctor.username) if a.doctor_id else None,
        'appointment_datetime': _iso(a.appointment_datetime),
        'end_datetime': _iso(a.end_datetime),
        'duration_minutes': a.duration_minutes,
        'appointment_type': a.appointment_type,
        'department': a.department,
        'status': a.status,
        'is_confirmed': a.is_confirmed,
        'booking_source': a.booking_source,
        'created_at': _iso(a.created_at),
        'updated_at': _iso(a.updated_at),
    }
    if detail:
        data.update({
            'patient_first_name': a.patient_first_name,
            'patient_last_name': a.patient_last_name,
            'patient_date_of_birth': _iso(a.patient_date_of_birth),
            'patient_sex': a.patient_sex,
            'patient_phone': a.patient_phone,
            'patient_email': a.patient_email,
            'reason_for_visit': a.reason_for_visit,
            'special_requirements': a.special_requirements,
            'status_notes': a.status_notes,
            'confirmed_at': _iso(a.confirmed_at),
            'confirmation_method': a.confirmation_method,
            'checked_in_at': _iso(a.checked_in_at),
            'started_at': _iso(a.started_at),
            'completed_at': _iso(a.completed_at),
            'visit_summary': a.visit_summary,
            'next_steps': a.next_steps,
            'cancelled_at': _iso(a.cancelled_at),
            'cancellation_reason': a.cancellation_reason,
            'rescheduled_from': a.rescheduled_from_id,
            'rescheduled_at': _iso(a.rescheduled_at),
        })
    return data


def appointments():
    return Appointment.objects.select_related('facility', 'doctor')


def filter_appointments(*, status=None, facility_id=None, doctor_id=None, date=None, date_from=None,
                        date_to=None, appointment_type=None, mobile_user_id=None):
    qs = appointments()
    if status:
        qs = qs.filter(status=status)
    if facility_id:
        qs = qs.filter(facility_id=facility_id)
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    if appointment_type:
        qs = qs.filter(appointment_type=appointment_type)
    if mobile_user_id:
        qs = qs.filter(mobile_user_id=mobile_user_id)
    if date:
        qs = qs.filter(appointment_datetime__date=date)
    if date_from:
        qs = qs.filter(appointment_datetime__date__gte=date_from)
    if date_to:
        qs = qs.filter(appointment_datetime__date__lte=date_to)
    return qs.order_by('appointment_datetime', 'id')


def conflicts(*, start, duration_minutes: int, doctor_id=None, facility_id=None, exclude_id=None):
    """Active appointments overlapping ``[start, start + duration)``."""
    if not doctor_id and not facility_id:
        return []
    end = start + timedelta(minutes=duration_minutes)
    qs = Appointment.objects.filter(status__in=Appointment.ACTIVE_STATUSES)
    qs = qs.filter(doctor_id=doctor_id) if doctor_id else qs.filter(doctor__isnull=True, facility_id=facility_id)
    if exclude_id:
        qs = qs.exclude(pk=exclude_id)
    # Overlap test needs the other row's end, which is computed per row
    qs = qs.filter(appointment_datetime__lt=end,
                   appointment_datetime__gte=start - timedelta(hours=24))
    return [a for a in qs if a.end_datetime > start]


def check_availability(*, start, duration_minutes: int = 30, doctor_id=None, facility_id=None,
                       exclude_id=None) -> dict[str, Any]:
    clashes = conflicts(start=start, duration_minutes=duration_minutes, doctor_id=doctor_id,
                        facility_id=facility_id, exclude_id=exclude_id)
    return {
        'available': not clashes,
        'conflicts': [
            {'id': a.id, 'appointment_datetime': _iso(a.appointment_datetime),
             'end_datetime': _iso(a.end_datetime), 'status': a.status}
            for a in clashes
        ],
    }


def book(data: dict[str, Any], *, user: Optional[User] = None, source: str = 'web') -> tuple[Appointment, bool]:
    """Book an appointment; returns ``(appointment, created)``.

    Repeating a booking with the same ``mobile_appointment_id`` returns
    the stored appointment instead of creating a second one.
    """
    mobile_id = data.get('mobile_appointment_id')
    if mobile_id:
        existing = appointments().filter(mobile_appointment_id=mobile_id).first()
        if existing:
            return existing, False

    start = data['appointment_datetime']
    if start <= timezone.now():
        raise ValidationError({'appointment_datetime': ['Appointment must be in the future.']})
    duration = data.get('duration_minutes') or 30

    with transaction.atomic():
        clashes = conflicts(start=start, duration_minutes=duration,
                            doctor_id=data.get('doctor_id'), facility_id=data.get('facility_id'))
        if clashes:
            raise ValidationError({'appointment_datetime': ['The requested time slot is not available.']})
        token, expires = new_token()
        fields = {k: v for k, v in data.items() if k in BOOKABLE_FIELDS}
        appt = Appointment.objects.create(
            **fields,
            duration_minutes=duration,
            booked_by=user if getattr(user, 'pk', None) else None,
            booking_source=source,
            confirmation_token=token,
            token_expires_at=expires,
        )
        log_action(user=user, action='appointment_book', object_type='appointment', object_id=appt.id,
                   detail={'source': source})
        transaction.on_commit(lambda: broadcast('appointment.booked', appointment_id=appt.id))

    logger.info('appointment %s booked (%s) for %s', appt.id, source, appt.appointment_datetime)
    if appt.doctor_id:
        notifications.send(
            appt.doctor, 'appointment', 'New appointment',
            f'{appt.patient_name} on {timezone.localtime(appt.appointment_datetime):%Y-%m-%d %H:%M}',
            channels=['in_app'], data={'appointment_id': appt.id, 'action_url': f'/appointments/{appt.id}'},
        )
    return appt, True


def _lock(appointment_id: int) -> Appointment:
    return Appointment.objects.select_for_update().get(pk=appointment_id)


def _move(a: Appointment, new_status: str) -> str:
    ensure_transition('appointment', a.status, new_status)
    previous = a.status
    a.status = new_status
    column = STATUS_TIMESTAMPS.get(new_status)
    if column:
        setattr(a, column, timezone.now())
    return previous


def _transition(appointment_id: int, user, new_status: str, **changes) -> Appointment:
    with transaction.atomic():
        a = _lock(appointment_id)
        previous = _move(a, new_status)
        for field, value in changes.items():
            setattr(a, field, value)
        a.save()
        log_action(user=user, action=f'appointment_{new_status}', object_type='appointment', object_id=a.id,
                   detail={'from': previous, 'to': new_status})
        transaction.on_commit(lambda: broadcast('appointment.status_changed', appointment_id=a.id, status=new_status))
    logger.info('appointment %s %s -> %s', a.id, previous, new_status)
    return a


def confirm(appointment_id: int, user, *, method: str = 'web') -> Appointment:
    return _transition(appointment_id, user, Appointment.STATUS_CONFIRMED,
                       is_confirmed=True, confirmation_method=method)


def check_in(appointment_id: int, user) -> Appointment:
    return _transition(appointment_id, user, Appointment.STATUS_CHECKED_IN, checked_in_by=user)


def start(appointment_id: int, user) -> Appointment:
    return _transition(appointment_id, user, Appointment.STATUS_IN_PROGRESS)


def complete(appointment_id: int, user, *, visit_summary: str = '', next_steps: str = '') -> Appointment:
    return _transition(appointment_id, user, Appointment.STATUS_COMPLETED,
                       visit_summary=visit_summary, next_steps=next_steps)


def cancel(appointment_id: int, user, *, reason: str) -> Appointment:
    if not (reason or '').strip():
        raise ValidationError({'reason': ['This field is required.']})
    return _transition(appointment_id, user, Appointment.STATUS_CANCELLED,
                       cancellation_reason=reason,
                       cancelled_by=user if getattr(user, 'pk', None) else None)


def cancel_for_mobile(appointment_id: int, mobile_user_id: str, *, reason: str) -> Appointment:
    if not Appointment.objects.filter(pk=appointment_id, mobile_user_id=mobile_user_id).exists():
        raise NotFound('Appointment not found.')
    return cancel(appointment_id, None, reason=reason)


def reschedule(appointment_id: int, user, *, new_datetime, reason: str = '') -> Appointment:
    """Move an appointment to a new time.

    The old row becomes ``rescheduled`` and a fresh appointment linked by
    ``rescheduled_from`` takes its place.
    """
    if new_datetime <= timezone.now():
        raise ValidationError({'new_datetime': ['New appointment time must be in the future.']})
    with transaction.atomic():
        old = _lock(appointment_id)
        clashes = conflicts(start=new_datetime, duration_minutes=old.duration_minutes,
                            doctor_id=old.doctor_id, facility_id=old.facility_id, exclude_id=old.id)
        if clashes:
            raise ValidationError({'new_datetime': ['The requested time slot is not available.']})
        _move(old, Appointment.STATUS_RESCHEDULED)
        old.status_notes = reason
        old.save()

        token, expires = new_token()
        new = Appointment.objects.create(
            **{field: getattr(old, field) for field in CARRY_OVER},
            appointment_datetime=new_datetime,
            rescheduled_from=old,
            booked_by=user if getattr(user, 'pk', None) else None,
            confirmation_token=token,
            token_expires_at=expires,
        )
        log_action(user=user, action='appointment_reschedule', object_type='appointment', object_id=old.id,
                   detail={'new_appointment_id': new.id, 'reason': reason})
        transaction.on_commit(lambda: broadcast('appointment.rescheduled', appointment_id=new.id))
    logger.info('appointment %s rescheduled as %s', old.id, new.id)
    return new


def confirm_by_token(token: str) -> Appointment:
    """Public confirmation link: 404 unknown, 410 expired, no-op if already confirmed."""
    with transaction.atomic():
        a = Appointment.objects.select_for_update().filter(confirmation_token=token).first()
        if a is None:
            raise NotFound('Invalid confirmation token.')
        if a.is_confirmed:
            return a
        if a.token_expires_at and a.token_expires_at < timezone.now():
            raise Gone('Confirmation link has expired.')
        _move(a, Appointment.STATUS_CONFIRMED)
        a.is_confirmed = True
        a.confirmation_method = 'link'
        a.save()
        log_action(user=None, action='appointment_confirmed', object_type='appointment', object_id=a.id,
                   detail={'method': 'link'})
    return a


def mark_no_shows(now=None) -> int:
    """Mark scheduled or confirmed appointments past the grace period as no-shows."""
    now = now or timezone.now()
    cutoff = now - timedelta(minutes=getattr(settings, 'NO_SHOW_GRACE_MINUTES', 60))
    with transaction.atomic():
        ids = list(
            Appointment.objects.select_for_update()
            .filter(status__in=[Appointment.STATUS_SCHEDULED, Appointment.STATUS_CONFIRMED],
                    appointment_datetime__lt=cutoff)
            .values_list('id', flat=True)
        )
        count = Appointment.objects.filter(pk__in=ids).update(status=Appointment.STATUS_NO_SHOW, updated_at=now)
    if count:
        logger.info('marked %s appointments as no-show', count)
        broadcast('appointment.no_show', count=count)
    return count


def statistics(day=None) -> dict[str, Any]:
    day = day or timezone.localdate()
    counts = dict(
        Appointment.objects.filter(appointment_datetime__date=day)
        .values_list('status').annotate(n=Count('id'))
    )
    upcoming = Appointment.objects.filter(
        status__in=[Appointment.STATUS_SCHEDULED, Appointment.STATUS_CONFIRMED],
        appointment_datetime__gte=timezone.now(),
    ).count()
    return {
        'date': day.isoformat(),
        'total_today': sum(counts.values()),
        'by_status': {key: counts.get(key, 0) for key, _ in Appointment.STATUS_CHOICES},
        'upcoming': upcoming,
    }
