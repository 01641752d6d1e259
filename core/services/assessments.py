"""
Assessment ingestion, listing and clinician review.

Review covers validation, rejection, clinical notes and manual risk
adjustments.

Mobile clients submit assessments with a 1-25 score.  The verbatim value
is kept in ``mobile_risk_score`` and everything else works on the 0-100
scale (see :mod:`core.services.risk`).
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from django.conf import settings
from django.core.cache import cache
from django.db import IntegrityError, transaction
from django.db.models import Count, Q
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from core.exceptions import TransitionError, VersionConflict
from core.models import Assessment, AssessmentComment, AssessmentRiskAdjustment, ClinicalValidation, User
from core.services import notifications
from core.services.audit import log_action
from core.services.realtime import broadcast
from core.services.risk import normalize_mobile_score, risk_level

logger = logging.getLogger(__name__)

STATS_CACHE_KEY = 'assessments:statistics'
SIGNIFICANT_DIFFERENCE = 15

MOBILE_FIELDS = (
    'mobile_user_id', 'session_id', 'assessment_external_id',
    'patient_first_name', 'patient_last_name', 'patient_date_of_birth', 'patient_sex',
    'patient_email', 'patient_phone', 'assessment_date', 'version', 'region', 'city',
    'latitude', 'longitude', 'urgency', 'recommended_action',
    'vital_signs', 'symptoms', 'medical_history', 'medications', 'lifestyle', 'recommendations',
    'device_platform', 'device_version', 'app_version', 'mobile_created_at',
)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def format_assessment(a: Assessment, detail: bool = False) -> dict[str, Any]:
    data: dict[str, Any] = {
        'id': a.id,
        'assessment_external_id': a.assessment_external_id,
        'mobile_user_id': a.mobile_user_id,
        'patient_name': a.patient_name,
        'patient_sex': a.patient_sex,
        'patient_date_of_birth': _iso(a.patient_date_of_birth),
        'assessment_date': _iso(a.assessment_date),
        'region': a.region,
        'city': a.city,
        'mobile_risk_score': a.mobile_risk_score,
        'ml_risk_score': a.ml_risk_score,
        'ml_risk_level': a.ml_risk_level,
        'final_risk_score': a.final_risk_score,
        'final_risk_level': a.final_risk_level,
        'urgency': a.urgency,
        'status': a.status,
        'version_counter': a.version_counter,
        'validated_by': a.validated_by_id,
        'validated_at': _iso(a.validated_at),
        'validation_agrees_with_ml': a.validation_agrees_with_ml,
        'created_at': _iso(a.created_at),
        'updated_at': _iso(a.updated_at),
    }
    if detail:
        data.update({
            'session_id': a.session_id,
            'patient_first_name': a.patient_first_name,
            'patient_last_name': a.patient_last_name,
            'patient_email': a.patient_email,
            'patient_phone': a.patient_phone,
            'country': a.country,
            'latitude': float(a.latitude) if a.latitude is not None else None,
            'longitude': float(a.longitude) if a.longitude is not None else None,
            'recommended_action': a.recommended_action,
            'vital_signs': a.vital_signs,
            'symptoms': a.symptoms,
            'medical_history': a.medical_history,
            'medications': a.medications,
            'lifestyle': a.lifestyle,
            'recommendations': a.recommendations,
            'validation_notes': a.validation_notes,
            'device_platform': a.device_platform,
            'app_version': a.app_version,
            'synced_at': _iso(a.synced_at),
            'validations': [
                {
                    'id': v.id,
                    'validator': v.validator_id,
                    'original_ml_score': v.original_ml_score,
                    'validated_score': v.validated_score,
                    'validated_level': v.validated_level,
                    'score_difference': v.score_difference,
                    'agreement_level': v.agreement_level,
                    'clinical_notes': v.clinical_notes,
                    'created_at': _iso(v.created_at),
                }
                for v in a.validations.all().order_by('created_at')
            ],
        })
    return data


def filter_assessments(*, status=None, risk_level=None, urgency=None, search=None, region=None,
                       start_date=None, end_date=None):
    qs = Assessment.objects.all()
    if status:
        qs = qs.filter(status=status)
    if risk_level:
        qs = qs.filter(final_risk_level__iexact=risk_level)
    if urgency:
        qs = qs.filter(urgency__iexact=urgency)
    if region:
        qs = qs.filter(region=region)
    if search:
        qs = qs.filter(
            Q(patient_first_name__icontains=search)
            | Q(patient_last_name__icontains=search)
            | Q(assessment_external_id__icontains=search)
            | Q(mobile_user_id__icontains=search)
        )
    if start_date:
        qs = qs.filter(assessment_date__date__gte=start_date)
    if end_date:
        qs = qs.filter(assessment_date__date__lte=end_date)
    return qs.order_by('-assessment_date', '-id')


def _agreement(agrees: bool, ml_score: Optional[int], validated_score: int) -> tuple[str, Optional[int]]:
    difference = None if ml_score is None else validated_score - ml_score
    if agrees:
        return 'complete_agreement', difference
    if difference is not None and abs(difference) >= SIGNIFICANT_DIFFERENCE:
        return 'significant_difference', difference
    return 'partial_agreement', difference


def validate_assessment(assessment_id: int, user: User, *, validated_risk_score: int, agrees_with_ml: bool,
                        notes: str = '') -> Assessment:
    """Record a clinician's score for an assessment.

    The ML score is left untouched; ``final_risk_*`` takes the clinical
    value.  Rejected assessments cannot be validated.  Each call adds a
    :class:`ClinicalValidation` row, so re-validation keeps history.
    """
    with transaction.atomic():
        a = Assessment.objects.select_for_update().get(pk=assessment_id)
        if a.status == Assessment.STATUS_REJECTED:
            raise TransitionError(a.status, Assessment.STATUS_VALIDATED, 'assessment')
        level = risk_level(validated_risk_score)
        agreement, difference = _agreement(agrees_with_ml, a.ml_risk_score, validated_risk_score)

        a.final_risk_score = validated_risk_score
        a.final_risk_level = level
        a.status = Assessment.STATUS_VALIDATED
        a.validated_by = user
        a.validated_at = timezone.now()
        a.validation_notes = notes
        a.validation_agrees_with_ml = agrees_with_ml
        a.save()

        ClinicalValidation.objects.create(
            assessment=a,
            validator=user,
            original_ml_score=a.ml_risk_score,
            original_ml_level=a.ml_risk_level,
            validated_score=validated_risk_score,
            validated_level=level,
            score_difference=difference,
            agreement_level=agreement,
            clinical_notes=notes,
        )
        log_action(user=user, action='assessment_validate', object_type='assessment', object_id=a.id,
                   detail={'score': validated_risk_score, 'level': level, 'agreement': agreement})

    cache.delete(STATS_CACHE_KEY)
    logger.info('assessment %s validated by %s: %s (%s)', a.id, user.pk, level, agreement)
    notifications.send(
        user, 'assessment', 'Assessment validated',
        f'Assessment #{a.id} for {a.patient_name or "patient"} was validated as {level} risk.',
        channels=['in_app'],
        data={'assessment_id': a.id, 'related_assessment_id': a.id, 'action_url': f'/assessments/{a.id}'},
        priority='high' if level == 'High' else 'normal',
    )
    return a


def reject_assessment(assessment_id: int, user: User, *, reason: str, notes: str = '') -> Assessment:
    with transaction.atomic():
        a = Assessment.objects.select_for_update().get(pk=assessment_id)
        if a.status == Assessment.STATUS_REJECTED:
            raise TransitionError(a.status, Assessment.STATUS_REJECTED, 'assessment')
        a.status = Assessment.STATUS_REJECTED
        a.validated_by = user
        a.validated_at = timezone.now()
        a.validation_notes = reason if not notes else f'{reason}\n\n{notes}'
        a.validation_agrees_with_ml = False
        a.save()
        ClinicalValidation.objects.create(
            assessment=a,
            validator=user,
            original_ml_score=a.ml_risk_score,
            original_ml_level=a.ml_risk_level,
            agreement_level='complete_disagreement',
            clinical_notes=a.validation_notes,
        )
        log_action(user=user, action='assessment_reject', object_type='assessment', object_id=a.id,
                   detail={'reason': reason})
    cache.delete(STATS_CACHE_KEY)
    logger.info('assessment %s rejected by %s', a.id, user.pk)
    return a


def statistics() -> dict[str, Any]:
    cached = cache.get(STATS_CACHE_KEY)
    if cached:
        return cached
    by_status = dict(Assessment.objects.values_list('status').annotate(n=Count('id')))
    by_risk = dict(
        Assessment.objects.exclude(final_risk_level='').values_list('final_risk_level').annotate(n=Count('id'))
    )
    validations = ClinicalValidation.objects.exclude(agreement_level='complete_disagreement')
    total_validations = validations.count()
    agreed = validations.filter(agreement_level='complete_agreement').count()
    data = {
        'total': sum(by_status.values()),
        'by_status': {key: by_status.get(key, 0) for key, _ in Assessment.STATUS_CHOICES},
        'risk_distribution': {key: by_risk.get(key, 0) for key, _ in Assessment.RISK_LEVEL_CHOICES},
        'validated_today': Assessment.objects.filter(validated_at__date=timezone.localdate()).count(),
        'ml_agreement_rate': round(agreed / total_validations * 100, 2) if total_validations else None,
    }
    cache.set(STATS_CACHE_KEY, data, settings.STATS_CACHE_SECONDS)
    return data


def ingest_mobile(payload: dict[str, Any]) -> Assessment:
    """Create an assessment from a validated mobile payload."""
    fields = {k: payload[k] for k in MOBILE_FIELDS if payload.get(k) is not None}
    mobile_score = payload['final_risk_score']
    ml_score = normalize_mobile_score(mobile_score)
    a = Assessment.objects.create(
        **fields,
        mobile_risk_score=mobile_score,
        ml_risk_score=ml_score,
        ml_risk_level=payload.get('final_risk_level', ''),
        final_risk_score=ml_score,
        final_risk_level=risk_level(ml_score),
        status=Assessment.STATUS_PENDING,
        synced_at=timezone.now(),
    )
    cache.delete(STATS_CACHE_KEY)
    return a


def find_existing(external_id) -> Optional[Assessment]:
    if not external_id:
        return None
    return Assessment.objects.filter(assessment_external_id=external_id).first()


def bulk_ingest(items: list[dict[str, Any]], item_errors: dict[int, Any]) -> dict[str, Any]:
    """Ingest a batch; ``item_errors`` maps index to validation errors found upstream."""
    results = []
    saved = failed = 0
    for index, item in enumerate(items):
        if index in item_errors:
            failed += 1
            results.append({'index': index, 'success': False, 'errors': item_errors[index]})
            continue
        external_id = item.get('assessment_external_id')
        existing = find_existing(external_id)
        if existing is not None:
            failed += 1
            results.append({'index': index, 'success': False, 'message': 'Assessment already exists',
                            'assessment_id': existing.id, 'assessment_external_id': external_id})
            continue
        try:
            with transaction.atomic():
                a = ingest_mobile(item)
        except IntegrityError:
            failed += 1
            results.append({'index': index, 'success': False, 'assessment_external_id': external_id,
                            'errors': {'assessment_external_id': ['Duplicate assessment']}})
            continue
        saved += 1
        results.append({'index': index, 'success': True, 'assessment_id': a.id, 'assessment_external_id': a.assessment_external_id})
    logger.info('bulk ingest: %s saved, %s failed', saved, failed)
    return {'total': len(items), 'successful': saved, 'failed': failed, 'results': results}


def _author(u: Optional[User]) -> Optional[dict]:
    if u is None:
        return None
    return {'id': u.id, 'first_name': u.first_name, 'last_name': u.last_name}


def format_note(root: AssessmentComment) -> dict[str, Any]:
    """A root note with its replies read as successive versions."""
    chain = sorted([root, *root.replies.all()], key=lambda n: (n.created_at, n.id))
    versions = [
        {
            'id': n.id,
            'version': index,
            'content': n.comment,
            'visibility': n.visibility,
            'created_at': _iso(n.created_at),
            'author': _author(n.user),
        }
        for index, n in enumerate(chain, start=1)
    ]
    latest = versions[-1]
    return {
        'id': root.id,
        'current_version': len(versions),
        'latest_content': latest['content'],
        'visibility': latest['visibility'],
        'mobile_visible': latest['visibility'] == 'shared',
        'created_at': versions[0]['created_at'],
        'author': versions[0]['author'],
        'versions': versions,
    }


def _notes(a: Assessment):
    return (a.comments.filter(comment_type='clinical_note')
            .select_related('user').prefetch_related('replies__user'))


def clinical_notes(assessment_id: int) -> list[dict[str, Any]]:
    a = Assessment.objects.get(pk=assessment_id)
    roots = _notes(a).filter(parent__isnull=True).order_by('-created_at', '-id')
    return [format_note(n) for n in roots]


def add_clinical_note(assessment_id: int, user: User, *, content: str, visibility: str,
                      mobile_visible: bool = False, parent_note_id: Optional[int] = None) -> AssessmentComment:
    """Store a note, or a new version of one when ``parent_note_id`` is set.

    Versions always hang off the root note.  Returns the root.
    """
    a = Assessment.objects.get(pk=assessment_id)
    parent_id = None
    if parent_note_id:
        parent = _notes(a).filter(pk=parent_note_id).first()
        if parent is None:
            raise ValidationError({'parent_note_id': ['Note does not belong to this assessment.']})
        parent_id = parent.parent_id or parent.id
    if mobile_visible:
        visibility = 'shared'

    with transaction.atomic():
        note = AssessmentComment.objects.create(
            assessment=a, user=user, comment=content, comment_type='clinical_note',
            visibility=visibility, parent_id=parent_id,
        )
        log_action(user=user, action='assessment_note', object_type='assessment', object_id=a.id,
                   detail={'note_id': note.id, 'visibility': visibility})
        if visibility == 'shared':
            transaction.on_commit(lambda: broadcast('assessment.note_shared', assessment_id=a.id, note_id=note.id))
    logger.info('note %s added to assessment %s by %s (%s)', note.id, a.id, user.pk, visibility)
    return _notes(a).get(pk=parent_id or note.id)


def format_adjustment(adj: AssessmentRiskAdjustment) -> dict[str, Any]:
    return {
        'id': adj.id,
        'old_score': adj.old_score,
        'old_level': adj.old_level,
        'new_score': adj.new_score,
        'new_level': adj.new_level,
        'difference': adj.difference,
        'justification': adj.justification,
        'alert_triggered': adj.alert_triggered,
        'created_at': _iso(adj.created_at),
        'clinician': _author(adj.adjusted_by),
    }


def risk_adjustments(assessment_id: int) -> list[dict[str, Any]]:
    a = Assessment.objects.get(pk=assessment_id)
    qs = a.risk_adjustments.select_related('adjusted_by').order_by('-created_at', '-id')
    return [format_adjustment(adj) for adj in qs]


def adjust_risk_score(assessment_id: int, user: User, *, new_risk_score: int,
                      justification: str) -> tuple[Assessment, AssessmentRiskAdjustment]:
    """Override the final score after review and keep the change on record.

    A change of at least ``SIGNIFICANT_DIFFERENCE`` points raises an alert.
    """
    with transaction.atomic():
        a = Assessment.objects.select_for_update().get(pk=assessment_id)
        if a.status == Assessment.STATUS_REJECTED:
            raise TransitionError(a.status, Assessment.STATUS_VALIDATED, 'assessment')
        old_score = a.final_risk_score if a.final_risk_score is not None else a.ml_risk_score
        old_level = a.final_risk_level or a.ml_risk_level or 'Low'
        if old_score == new_risk_score:
            raise ValidationError({'new_risk_score': ['Risk score is unchanged.']})
        level = risk_level(new_risk_score)
        difference = None if old_score is None else new_risk_score - old_score
        alert = difference is not None and abs(difference) >= SIGNIFICANT_DIFFERENCE

        a.final_risk_score = new_risk_score
        a.final_risk_level = level
        a.status = Assessment.STATUS_VALIDATED
        a.validated_by = user
        a.validated_at = timezone.now()
        a.save()

        adj = AssessmentRiskAdjustment.objects.create(
            assessment=a,
            adjusted_by=user,
            old_score=old_score,
            old_level=old_level,
            new_score=new_risk_score,
            new_level=level,
            difference=difference,
            justification=justification,
            alert_triggered=alert,
            metadata={'threshold': SIGNIFICANT_DIFFERENCE},
        )
        log_action(user=user, action='assessment_risk_adjust', object_type='assessment', object_id=a.id,
                   detail={'old_score': old_score, 'new_score': new_risk_score, 'alert': alert})
        transaction.on_commit(lambda: broadcast('assessment.risk_adjusted', assessment_id=a.id, alert=alert))

    cache.delete(STATS_CACHE_KEY)
    if alert:
        logger.warning('assessment %s risk moved %s -> %s by %s', a.id, old_score, new_risk_score, user.pk)
    else:
        logger.info('assessment %s risk adjusted %s -> %s by %s', a.id, old_score, new_risk_score, user.pk)
    return a, adj


def update_assessment(assessment_id: int, data: dict[str, Any], *, user: Optional[User] = None) -> Assessment:
    """Apply a client edit guarded by ``version_counter``.

    A stale counter raises :class:`VersionConflict`.  A new 1-25 score
    re-derives the ML values; the final score follows only while the
    assessment is still pending review.
    """
    data = dict(data)
    submitted = data.pop('version_counter')
    with transaction.atomic():
        a = Assessment.objects.select_for_update().get(pk=assessment_id)
        if a.version_counter != submitted:
            raise VersionConflict(a.version_counter, submitted)

        for name in MOBILE_FIELDS:
            if name in data:
                setattr(a, name, data[name])
        mobile_score = data.get('final_risk_score')
        if mobile_score is not None:
            ml_score = normalize_mobile_score(mobile_score)
            a.mobile_risk_score = mobile_score
            a.ml_risk_score = ml_score
            if data.get('final_risk_level'):
                a.ml_risk_level = data['final_risk_level']
            if a.status == Assessment.STATUS_PENDING:
                a.final_risk_score = ml_score
                a.final_risk_level = risk_level(ml_score)
        a.version_counter += 1
        a.synced_at = timezone.now()
        a.save()
        log_action(user=user, action='assessment_update', object_type='assessment', object_id=a.id,
                   detail={'version_counter': a.version_counter, 'fields': sorted(data)})

    cache.delete(STATS_CACHE_KEY)
    logger.info('assessment %s updated to version %s', a.id, a.version_counter)
    return a
