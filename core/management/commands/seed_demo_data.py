"""
Management command to populate the database with demo data.
"""
import random
from datetime import timedelta

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from core.models import Assessment, EducationalContent, HealthcareFacility, Referral, ReferralHistory, User
from core.services.risk import referral_priority, referral_urgency, risk_level

FACILITIES = [
    {
        'code': 'PHC-NCR-001', 'name': 'Philippine Heart Center', 'type': 'specialty_center', 'level': 'tertiary',
        'region': 'NCR', 'province': 'Metro Manila', 'city': 'Quezon City', 'latitude': '14.6440', 'longitude': '121.0473',
        'has_emergency': True, 'is_24_7': True, 'bed_capacity': 400, 'icu_capacity': 60, 'current_bed_availability': 35,
        'services': ['cardiology', 'cardiac_surgery', 'emergency', 'icu'], 'is_philhealth_accredited': True,
    },
    {
        'code': 'PGH-NCR-002', 'name': 'Philippine General Hospital', 'type': 'medical_center', 'level': 'tertiary',
        'region': 'NCR', 'province': 'Metro Manila', 'city': 'Manila', 'latitude': '14.5779', 'longitude': '120.9856',
        'has_emergency': True, 'is_24_7': True, 'bed_capacity': 1500, 'icu_capacity': 120, 'current_bed_availability': 80,
        'services': ['cardiology', 'internal_medicine', 'emergency', 'laboratory'], 'is_philhealth_accredited': True,
    },
    {
        'code': 'QCGH-NCR-003', 'name': 'Quezon City General Hospital', 'type': 'district_hospital', 'level': 'secondary',
        'region': 'NCR', 'province': 'Metro Manila', 'city': 'Quezon City', 'latitude': '14.6760', 'longitude': '121.0437',
        'has_emergency': True, 'bed_capacity': 250, 'icu_capacity': 20, 'current_bed_availability': 40,
        'services': ['internal_medicine', 'emergency', 'laboratory'], 'is_philhealth_accredited': True,
    },
    {
        'code': 'RHU-R4A-004', 'name': 'Calamba Rural Health Unit', 'type': 'rural_health_unit', 'level': 'primary',
        'region': 'Region IV-A', 'province': 'Laguna', 'city': 'Calamba', 'latitude': '14.2117', 'longitude': '121.1653',
        'bed_capacity': 10, 'current_bed_availability': 6, 'services': ['consultation', 'ecg', 'blood_pressure_screening'],
    },
    {
        'code': 'VSMMC-R7-005', 'name': 'Vicente Sotto Memorial Medical Center', 'type': 'medical_center',
        'level': 'tertiary', 'region': 'Region VII', 'province': 'Cebu', 'city': 'Cebu City',
        'latitude': '10.3082', 'longitude': '123.8915', 'has_emergency': True, 'is_24_7': True,
        'bed_capacity': 800, 'icu_capacity': 50, 'current_bed_availability': 60,
        'services': ['cardiology', 'emergency', 'icu'], 'is_philhealth_accredited': True,
    },
]

STAFF = [
    {'username': 'super', 'role': 'super', 'facility': None, 'first_name': 'Maria', 'last_name': 'Santos'},
    {'username': 'phc_admin', 'role': 'admin', 'facility': 'PHC-NCR-001', 'first_name': 'Jose', 'last_name': 'Reyes'},
    {'username': 'dr_cruz', 'role': 'doctor', 'facility': 'PHC-NCR-001', 'first_name': 'Ana', 'last_name': 'Cruz',
     'specialization': 'Cardiology'},
    {'username': 'dr_garcia', 'role': 'doctor', 'facility': 'PGH-NCR-002', 'first_name': 'Ramon', 'last_name': 'Garcia',
     'specialization': 'Internal Medicine'},
    {'username': 'nurse_lim', 'role': 'nurse', 'facility': 'RHU-R4A-004', 'first_name': 'Grace', 'last_name': 'Lim'},
    {'username': 'analyst', 'role': 'analyst', 'facility': None, 'first_name': 'Paolo', 'last_name': 'Torres'},
]

PATIENTS = [
    ('Juan', 'Dela Cruz', 'Male'), ('Maria', 'Clara', 'Female'), ('Andres', 'Bonifacio', 'Male'),
    ('Gabriela', 'Silang', 'Female'), ('Emilio', 'Aguinaldo', 'Male'), ('Melchora', 'Aquino', 'Female'),
    ('Apolinario', 'Mabini', 'Male'), ('Teresa', 'Magbanua', 'Female'),
]

SYMPTOMS = ['chest_pain', 'shortness_of_breath', 'palpitations', 'dizziness', 'fatigue', 'leg_swelling']

CONTENT = [
    ('cvd_prevention', 'Protecting your heart', 'Pangangalaga sa iyong puso'),
    ('symptom_recognition', 'Warning signs of a heart attack', 'Mga babala ng atake sa puso'),
    ('lifestyle_modification', 'Small changes, big impact', 'Maliit na pagbabago, malaking epekto'),
    ('medication_compliance', 'Taking your medicines on time', 'Pag-inom ng gamot sa tamang oras'),
    ('emergency_response', 'What to do in an emergency', 'Ano ang gagawin sa emergency'),
    ('nutrition', 'Eating for a healthy heart', 'Pagkain para sa malusog na puso'),
    ('exercise', 'Staying active every day', 'Manatiling aktibo araw-araw'),
]


class Command(BaseCommand):
    help = 'Populate the database with demo facilities, staff, assessments, referrals and education content'

    def add_arguments(self, parser):
        parser.add_argument('--seed', type=int, default=42)

    @transaction.atomic
    def handle(self, *args, **options):
        random.seed(options['seed'])
        self.stdout.write('Creating demo data...')

        facilities = self.create_facilities()
        staff = self.create_staff(facilities)
        assessments = self.create_assessments()
        self.create_referrals(assessments, facilities, staff)
        self.create_content()

        self.stdout.write(self.style.SUCCESS('Demo data created.'))

    def create_facilities(self):
        facilities = {}
        for data in FACILITIES:
            facility, created = HealthcareFacility.objects.get_or_create(code=data['code'], defaults=data)
            facilities[facility.code] = facility
            if created:
                self.stdout.write(f'facility: {facility.name}')
        return facilities

    def create_staff(self, facilities):
        staff = {}
        for data in STAFF:
            defaults = {k: v for k, v in data.items() if k not in ('username', 'facility')}
            defaults.update({
                'email': f"{data['username']}@juanheart.ph",
                'password': make_password('juanheart123'),
                'facility': facilities.get(data['facility']),
                'is_staff': data['role'] == 'super',
                'is_superuser': data['role'] == 'super',
            })
            user, created = User.objects.get_or_create(username=data['username'], defaults=defaults)
            staff[user.username] = user
            if created:
                self.stdout.write(f'user: {user.username} ({user.role})')
        return staff

    def create_assessments(self):
        assessments = []
        now = timezone.now()
        for i, (first, last, sex) in enumerate(PATIENTS):
            mobile_score = random.randint(1, 25)
            score = mobile_score * 4
            symptoms = random.sample(SYMPTOMS, k=random.randint(1, 3))
            a, created = Assessment.objects.get_or_create(
                assessment_external_id=f'demo-{i + 1:04d}',
                defaults={
                    'mobile_user_id': f'demo-user-{i % 3 + 1}',
                    'patient_first_name': first,
                    'patient_last_name': last,
                    'patient_sex': sex,
                    'patient_date_of_birth': (now - timedelta(days=365 * random.randint(35, 75))).date(),
                    'assessment_date': now - timedelta(days=random.randint(0, 20)),
                    'region': random.choice(['NCR', 'Region IV-A', 'Region VII']),
                    'mobile_risk_score': mobile_score,
                    'ml_risk_score': score,
                    'ml_risk_level': risk_level(score),
                    'final_risk_score': score,
                    'final_risk_level': risk_level(score),
                    'urgency': referral_urgency(score, symptoms),
                    'symptoms': symptoms,
                    'vital_signs': {'systolic_bp': random.randint(110, 180), 'diastolic_bp': random.randint(70, 110),
                                    'heart_rate': random.randint(60, 110)},
                    'synced_at': now,
                },
            )
            assessments.append(a)
        self.stdout.write(f'assessments: {len(assessments)}')
        return assessments

    def create_referrals(self, assessments, facilities, staff):
        referrer = staff['nurse_lim']
        target = facilities['PHC-NCR-001']
        for a in assessments:
            if a.final_risk_level != 'High' or a.referrals.exists():
                continue
            referral = Referral.objects.create(
                assessment=a,
                patient_first_name=a.patient_first_name,
                patient_last_name=a.patient_last_name,
                patient_sex=a.patient_sex,
                patient_date_of_birth=a.patient_date_of_birth,
                source_facility=facilities['RHU-R4A-004'],
                target_facility=target,
                referring_user=referrer,
                priority=referral_priority(a.final_risk_score),
                urgency=a.urgency or 'Routine',
                chief_complaint=', '.join(a.symptoms),
                referral_type='cardiology',
            )
            ReferralHistory.objects.create(
                referral=referral, user=referrer, action='created', new_status=referral.status,
                action_description='Referral created from demo data',
            )
            a.status = Assessment.STATUS_REQUIRES_REFERRAL
            a.save(update_fields=['status', 'updated_at'])
            self.stdout.write(f'referral: #{referral.id} {referral.patient_name} -> {target.code}')

    def create_content(self):
        for category, title_en, title_fil in CONTENT:
            EducationalContent.objects.get_or_create(
                category=category,
                title_en=title_en,
                defaults={
                    'title_fil': title_fil,
                    'description_en': f'{title_en}: a short guide.',
                    'description_fil': f'{title_fil}: isang maikling gabay.',
                    'content_en': f'{title_en}. Talk to your health worker about your heart health.',
                    'content_fil': f'{title_fil}. Kausapin ang iyong health worker tungkol sa kalusugan ng puso.',
                    'reading_time_minutes': random.randint(3, 8),
                    'author': 'Juan Heart Team',
                },
            )
        self.stdout.write(f'education content: {EducationalContent.objects.count()}')
