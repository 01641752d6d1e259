"""
Risk score buckets.

All stored scores are on a 0-100 scale.  The mobile app reports a 1-25
score which is kept verbatim in ``Assessment.mobile_risk_score`` and
scaled by four on ingestion.
"""
from typing import Iterable, Optional

MOBILE_SCALE_MAX = 25

# Symptoms that force an Emergency referral regardless of score
EMERGENCY_SYMPTOMS = {'chest_pain', 'shortness_of_breath', 'severe_headache', 'loss_of_consciousness'}


def risk_level(score: Optional[int]) -> str:
    """Map a 0-100 score to Low / Moderate / High."""
    if score is None:
        return ''
    if score >= 70:
        return 'High'
    if score >= 40:
        return 'Moderate'
    return 'Low'


def normalize_mobile_score(score: int) -> int:
    return min(100, max(0, round(score * 100 / MOBILE_SCALE_MAX)))


def referral_priority(score: int) -> str:
    if score >= 75:
        return 'Critical'
    if score >= 50:
        return 'High'
    if score >= 25:
        return 'Medium'
    return 'Low'


def _symptom_names(symptoms) -> set[str]:
    if isinstance(symptoms, dict):
        return {k for k, v in symptoms.items() if v}
    if isinstance(symptoms, (list, tuple, set)):
        return {str(s) for s in symptoms}
    return set()


def referral_urgency(score: int, symptoms: Iterable = ()) -> str:
    if score >= 75 or _symptom_names(symptoms) & EMERGENCY_SYMPTOMS:
        return 'Emergency'
    if score >= 50:
        return 'Urgent'
    return 'Routine'


def referral_type(score: int) -> str:
    if score >= 75:
        return 'Emergency CVD Care'
    if score >= 50:
        return 'High Risk CVD Assessment'
    return 'CVD Risk Consultation'


def required_services(score: int) -> list[str]:
    services = ['Cardiology Consultation']
    if score >= 50:
        services += ['ECG', 'Laboratory Tests']
    if score >= 75:
        services += ['Emergency Care', 'Cardiac Monitoring']
    return services


def facility_level(score: int) -> str:
    if score >= 75:
        return 'tertiary'
    if score >= 50:
        return 'secondary'
    return 'primary'
