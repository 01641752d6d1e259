"""
Assessment endpoints for the clinical dashboard.

Staff may read and edit; validation, rejection, notes and risk
adjustments need a clinical role.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from core.models import Assessment
from core.permissions import IsClinicalRole, IsStaff
from core.responses import created, ok, paginate
from core.serializers.assessments import (
    AssessmentListQuerySerializer, AssessmentRejectSerializer, AssessmentUpdateSerializer,
    AssessmentValidateSerializer, ClinicalNoteSerializer, RiskAdjustmentSerializer,
)
from core.services import assessments as svc


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def assessment_list(request):
    s = AssessmentListQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    vd = dict(s.validated_data)
    page, per_page = vd.pop('page'), vd.pop('per_page')
    items, meta = paginate(svc.filter_assessments(**vd), page, per_page)
    return ok([svc.format_assessment(a) for a in items], meta=meta)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsStaff])
def assessment_detail(request, pk: int):
    if request.method == 'PUT':
        s = AssessmentUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        a = svc.update_assessment(pk, s.validated_data, user=request.user)
        return ok(svc.format_assessment(a, detail=True), 'Assessment updated successfully')
    a = Assessment.objects.select_related('validated_by').get(pk=pk)
    return ok(svc.format_assessment(a, detail=True))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def assessment_statistics(request):
    return ok(svc.statistics())


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def assessment_validate(request, pk: int):
    s = AssessmentValidateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    a = svc.validate_assessment(
        pk, request.user,
        validated_risk_score=vd['validated_risk_score'],
        agrees_with_ml=vd['validation_agrees_with_ml'],
        notes=vd['validation_notes'],
    )
    return ok(svc.format_assessment(a, detail=True), 'Assessment validated successfully')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def assessment_reject(request, pk: int):
    s = AssessmentRejectSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    a = svc.reject_assessment(pk, request.user, reason=s.validated_data['reason'], notes=s.validated_data['notes'])
    return ok(svc.format_assessment(a, detail=True), 'Assessment rejected')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def assessment_clinical_notes(request, pk: int):
    if request.method == 'POST':
        s = ClinicalNoteSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        note = svc.add_clinical_note(pk, request.user, **s.validated_data)
        return created(svc.format_note(note), 'Clinical note saved')
    return ok(svc.clinical_notes(pk))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaff])
def assessment_risk_adjustments(request, pk: int):
    return ok(svc.risk_adjustments(pk))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def assessment_adjust_risk(request, pk: int):
    s = RiskAdjustmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    a, adjustment = svc.adjust_risk_score(pk, request.user, **s.validated_data)
    return ok({'assessment': svc.format_assessment(a, detail=True), 'adjustment': svc.format_adjustment(adjustment)},
              'Risk score adjusted successfully')
