import django.contrib.auth.models
import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='HealthcareFacility',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('code', models.CharField(max_length=50, unique=True)),
                ('type', models.CharField(choices=[('barangay_health_station', 'Barangay Health Station'), ('rural_health_unit', 'Rural Health Unit'), ('city_health_office', 'City Health Office'), ('provincial_hospital', 'Provincial Hospital'), ('district_hospital', 'District Hospital'), ('private_hospital', 'Private Hospital'), ('medical_center', 'Medical Center'), ('specialty_center', 'Specialty Center'), ('clinic', 'Clinic'), ('emergency_facility', 'Emergency Facility')], db_index=True, max_length=40)),
                ('level', models.CharField(choices=[('primary', 'Primary'), ('secondary', 'Secondary'), ('tertiary', 'Tertiary')], db_index=True, default='primary', max_length=20)),
                ('address', models.CharField(blank=True, max_length=255)),
                ('city', models.CharField(blank=True, max_length=100)),
                ('province', models.CharField(blank=True, max_length=100)),
                ('region', models.CharField(blank=True, db_index=True, max_length=100)),
                ('postal_code', models.CharField(blank=True, max_length=10)),
                ('phone', models.CharField(blank=True, max_length=30)),
                ('email', models.EmailField(blank=True, max_length=254)),
                ('website', models.URLField(blank=True)),
                ('latitude', models.DecimalField(blank=True, decimal_places=7, max_digits=10, null=True)),
                ('longitude', models.DecimalField(blank=True, decimal_places=7, max_digits=10, null=True)),
                ('operating_hours', models.JSONField(blank=True, default=dict)),
                ('is_24_7', models.BooleanField(default=False)),
                ('has_emergency', models.BooleanField(default=False)),
                ('services', models.JSONField(blank=True, default=list)),
                ('bed_capacity', models.PositiveIntegerField(default=0)),
                ('icu_capacity', models.PositiveIntegerField(default=0)),
                ('current_bed_availability', models.PositiveIntegerField(default=0)),
                ('is_public', models.BooleanField(default=True)),
                ('is_doh_accredited', models.BooleanField(default=False)),
                ('is_philhealth_accredited', models.BooleanField(default=False)),
                ('accreditations', models.JSONField(blank=True, default=list)),
                ('accepts_referrals', models.BooleanField(default=True)),
                ('average_response_time_hours', models.PositiveIntegerField(blank=True, null=True)),
                ('preferred_referral_types', models.JSONField(blank=True, default=list)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
                ('is_verified', models.BooleanField(default=False)),
                ('created_from_mobile', models.BooleanField(default=False)),
                ('status_notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True, db_index=True)),
            ],
            options={
                'verbose_name_plural': 'healthcare facilities',
                'indexes': [
                    models.Index(fields=['region', 'city'], name='facility_region_city_idx'),
                    models.Index(fields=['is_active', 'accepts_referrals'], name='facility_active_referral_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email address')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('role', models.CharField(choices=[('super', 'Super Administrator'), ('admin', 'Facility Administrator'), ('doctor', 'Doctor'), ('nurse', 'Nurse'), ('analyst', 'Data Analyst')], default='nurse', max_length=10)),
                ('middle_name', models.CharField(blank=True, max_length=150)),
                ('phone', models.CharField(blank=True, max_length=30)),
                ('license_no', models.CharField(blank=True, db_index=True, max_length=50)),
                ('specialization', models.CharField(blank=True, max_length=100)),
                ('position', models.CharField(blank=True, max_length=100)),
                ('department', models.CharField(blank=True, max_length=100)),
                ('language_preference', models.CharField(choices=[('en', 'English'), ('fil', 'Filipino')], default='en', max_length=3)),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive'), ('suspended', 'Suspended'), ('pending', 'Pending')], db_index=True, default='active', max_length=10)),
                ('last_login_ip', models.GenericIPAddressField(blank=True, null=True)),
                ('mfa_enabled', models.BooleanField(default=False)),
                ('facility', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='staff', to='core.healthcarefacility')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'abstract': False,
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Assessment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('mobile_user_id', models.CharField(blank=True, db_index=True, max_length=100)),
                ('session_id', models.CharField(blank=True, max_length=100)),
                ('assessment_external_id', models.CharField(blank=True, max_length=100, null=True, unique=True)),
                ('patient_first_name', models.CharField(blank=True, max_length=100)),
                ('patient_last_name', models.CharField(blank=True, max_length=100)),
                ('patient_date_of_birth', models.DateField(blank=True, null=True)),
                ('patient_sex', models.CharField(blank=True, max_length=10)),
                ('patient_email', models.EmailField(blank=True, max_length=254)),
                ('patient_phone', models.CharField(blank=True, max_length=30)),
                ('assessment_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('version', models.CharField(blank=True, max_length=20)),
                ('country', models.CharField(default='Philippines', max_length=100)),
                ('region', models.CharField(blank=True, db_index=True, max_length=100)),
                ('city', models.CharField(blank=True, max_length=100)),
                ('latitude', models.DecimalField(blank=True, decimal_places=7, max_digits=10, null=True)),
                ('longitude', models.DecimalField(blank=True, decimal_places=7, max_digits=10, null=True)),
                ('mobile_risk_score', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('ml_risk_score', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('ml_risk_level', models.CharField(blank=True, max_length=20)),
                ('final_risk_score', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('final_risk_level', models.CharField(blank=True, choices=[('Low', 'Low'), ('Moderate', 'Moderate'), ('High', 'High')], db_index=True, max_length=20)),
                ('urgency', models.CharField(blank=True, db_index=True, max_length=30)),
                ('recommended_action', models.TextField(blank=True)),
                ('vital_signs', models.JSONField(blank=True, default=dict)),
                ('symptoms', models.JSONField(blank=True, default=list)),
                ('medical_history', models.JSONField(blank=True, default=dict)),
                ('medications', models.JSONField(blank=True, default=list)),
                ('lifestyle', models.JSONField(blank=True, default=dict)),
                ('recommendations', models.JSONField(blank=True, default=list)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('in_review', 'In review'), ('validated', 'Validated'), ('requires_referral', 'Requires referral'), ('completed', 'Completed'), ('rejected', 'Rejected')], db_index=True, default='pending', max_length=20)),
                ('validated_at', models.DateTimeField(blank=True, null=True)),
                ('validation_notes', models.TextField(blank=True)),
                ('validation_agrees_with_ml', models.BooleanField(blank=True, null=True)),
                ('device_platform', models.CharField(blank=True, max_length=20)),
                ('device_version', models.CharField(blank=True, max_length=50)),
                ('app_version', models.CharField(blank=True, max_length=20)),
                ('mobile_created_at', models.DateTimeField(blank=True, null=True)),
                ('synced_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True, db_index=True)),
                ('validated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='validated_assessments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [
                    models.Index(fields=['status', 'final_risk_level'], name='assessment_status_risk_idx'),
                    models.Index(fields=['mobile_user_id', 'updated_at'], name='assessment_mobile_sync_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ClinicalValidation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('original_ml_score', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('original_ml_level', models.CharField(blank=True, max_length=20)),
                ('validated_score', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('validated_level', models.CharField(blank=True, max_length=20)),
                ('score_difference', models.IntegerField(blank=True, null=True)),
                ('agreement_level', models.CharField(choices=[('complete_agreement', 'Complete agreement'), ('partial_agreement', 'Partial agreement'), ('significant_difference', 'Significant difference'), ('complete_disagreement', 'Complete disagreement')], max_length=30)),
                ('clinical_notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('assessment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='validations', to='core.assessment')),
                ('validator', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='clinical_validations', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='Referral',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('patient_first_name', models.CharField(max_length=100)),
                ('patient_last_name', models.CharField(max_length=100)),
                ('patient_date_of_birth', models.DateField(blank=True, null=True)),
                ('patient_sex', models.CharField(blank=True, choices=[('Male', 'Male'), ('Female', 'Female'), ('Other', 'Other')], max_length=10)),
                ('patient_phone', models.CharField(blank=True, max_length=30)),
                ('priority', models.CharField(choices=[('Low', 'Low'), ('Medium', 'Medium'), ('High', 'High'), ('Critical', 'Critical')], db_index=True, default='Medium', max_length=10)),
                ('urgency', models.CharField(choices=[('Routine', 'Routine'), ('Urgent', 'Urgent'), ('Emergency', 'Emergency')], db_index=True, default='Routine', max_length=10)),
                ('referral_type', models.CharField(blank=True, max_length=100)),
                ('chief_complaint', models.TextField(blank=True)),
                ('clinical_notes', models.TextField(blank=True)),
                ('required_services', models.JSONField(blank=True, default=list)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('accepted', 'Accepted'), ('in_transit', 'In transit'), ('arrived', 'Arrived'), ('in_progress', 'In progress'), ('completed', 'Completed'), ('rejected', 'Rejected'), ('cancelled', 'Cancelled')], db_index=True, default='pending', max_length=20)),
                ('status_notes', models.TextField(blank=True)),
                ('rejection_reason', models.TextField(blank=True)),
                ('accepted_at', models.DateTimeField(blank=True, null=True)),
                ('in_transit_at', models.DateTimeField(blank=True, null=True)),
                ('arrived_at', models.DateTimeField(blank=True, null=True)),
                ('in_progress_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('rejected_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('scheduled_appointment', models.DateTimeField(blank=True, null=True)),
                ('appointment_notes', models.TextField(blank=True)),
                ('transport_method', models.CharField(blank=True, max_length=50)),
                ('transport_notes', models.TextField(blank=True)),
                ('estimated_travel_time_minutes', models.PositiveIntegerField(blank=True, null=True)),
                ('requires_follow_up', models.BooleanField(default=False)),
                ('follow_up_date', models.DateField(blank=True, null=True)),
                ('follow_up_notes', models.TextField(blank=True)),
                ('treatment_summary', models.TextField(blank=True)),
                ('diagnosis', models.TextField(blank=True)),
                ('recommendations', models.TextField(blank=True)),
                ('outcome', models.CharField(blank=True, choices=[('Improved', 'Improved'), ('Stable', 'Stable'), ('Deteriorated', 'Deteriorated'), ('Deceased', 'Deceased'), ('Unknown', 'Unknown')], max_length=15)),
                ('deleted_at', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assessment', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='referrals', to='core.assessment')),
                ('assigned_doctor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='referrals_assigned', to=settings.AUTH_USER_MODEL)),
                ('referring_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='referrals_made', to=settings.AUTH_USER_MODEL)),
                ('source_facility', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='outgoing_referrals', to='core.healthcarefacility')),
                ('target_facility', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='incoming_referrals', to='core.healthcarefacility')),
            ],
            options={
                'indexes': [
                    models.Index(fields=['target_facility', 'status'], name='referral_target_status_idx'),
                    models.Index(fields=['status', 'priority', 'created_at'], name='referral_status_prio_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ReferralHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('created', 'Created'), ('accepted', 'Accepted'), ('rejected', 'Rejected'), ('status_changed', 'Status changed'), ('scheduled', 'Scheduled'), ('completed', 'Completed'), ('escalated', 'Escalated'), ('cancelled', 'Cancelled')], max_length=20)),
                ('action_description', models.CharField(blank=True, max_length=255)),
                ('previous_status', models.CharField(blank=True, max_length=20)),
                ('new_status', models.CharField(blank=True, max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.CharField(blank=True, max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('referral', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='history', to='core.referral')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='referral_actions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name_plural': 'referral history',
                'ordering': ['created_at', 'id'],
                'indexes': [models.Index(fields=['referral', 'created_at'], name='refhistory_referral_idx')],
            },
        ),
        migrations.CreateModel(
            name='Appointment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('mobile_appointment_id', models.CharField(blank=True, max_length=100, null=True, unique=True)),
                ('mobile_user_id', models.CharField(blank=True, db_index=True, max_length=100)),
                ('patient_first_name', models.CharField(max_length=100)),
                ('patient_last_name', models.CharField(max_length=100)),
                ('patient_date_of_birth', models.DateField(blank=True, null=True)),
                ('patient_sex', models.CharField(blank=True, max_length=10)),
                ('patient_phone', models.CharField(blank=True, max_length=30)),
                ('patient_email', models.EmailField(blank=True, max_length=254)),
                ('appointment_datetime', models.DateTimeField(db_index=True)),
                ('duration_minutes', models.PositiveIntegerField(default=30)),
                ('appointment_type', models.CharField(choices=[('consultation', 'Consultation'), ('follow_up', 'Follow-up'), ('procedure', 'Procedure'), ('emergency', 'Emergency'), ('telemedicine', 'Telemedicine'), ('screening', 'Screening'), ('other', 'Other')], default='consultation', max_length=20)),
                ('department', models.CharField(blank=True, max_length=100)),
                ('reason_for_visit', models.TextField(blank=True)),
                ('special_requirements', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('scheduled', 'Scheduled'), ('confirmed', 'Confirmed'), ('checked_in', 'Checked in'), ('in_progress', 'In progress'), ('completed', 'Completed'), ('cancelled', 'Cancelled'), ('no_show', 'No show'), ('rescheduled', 'Rescheduled')], db_index=True, default='scheduled', max_length=20)),
                ('status_notes', models.TextField(blank=True)),
                ('is_confirmed', models.BooleanField(default=False)),
                ('confirmed_at', models.DateTimeField(blank=True, null=True)),
                ('confirmation_method', models.CharField(blank=True, max_length=20)),
                ('confirmation_token', models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ('token_expires_at', models.DateTimeField(blank=True, null=True)),
                ('checked_in_at', models.DateTimeField(blank=True, null=True)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('visit_summary', models.TextField(blank=True)),
                ('next_steps', models.TextField(blank=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('cancellation_reason', models.TextField(blank=True)),
                ('rescheduled_at', models.DateTimeField(blank=True, null=True)),
                ('booking_source', models.CharField(choices=[('web', 'Web'), ('mobile', 'Mobile'), ('phone', 'Phone'), ('walk_in', 'Walk-in')], default='web', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True, db_index=True)),
                ('assessment', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='appointments', to='core.assessment')),
                ('booked_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('cancelled_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('checked_in_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('doctor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='appointments', to=settings.AUTH_USER_MODEL)),
                ('facility', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='appointments', to='core.healthcarefacility')),
                ('referral', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='appointments', to='core.referral')),
                ('rescheduled_from', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='rescheduled_to', to='core.appointment')),
            ],
            options={
                'indexes': [
                    models.Index(fields=['facility', 'appointment_datetime'], name='appt_facility_dt_idx'),
                    models.Index(fields=['doctor', 'appointment_datetime'], name='appt_doctor_dt_idx'),
                    models.Index(fields=['status', 'appointment_datetime'], name='appt_status_dt_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='EducationalContent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('category', models.CharField(choices=[('cvd_prevention', 'CVD prevention'), ('symptom_recognition', 'Symptom recognition'), ('lifestyle_modification', 'Lifestyle modification'), ('medication_compliance', 'Medication compliance'), ('emergency_response', 'Emergency response'), ('risk_factors', 'Risk factors'), ('nutrition', 'Nutrition'), ('exercise', 'Exercise')], db_index=True, max_length=30)),
                ('title_en', models.CharField(max_length=255)),
                ('title_fil', models.CharField(max_length=255)),
                ('description_en', models.TextField(blank=True)),
                ('description_fil', models.TextField(blank=True)),
                ('content_en', models.TextField()),
                ('content_fil', models.TextField()),
                ('reading_time_minutes', models.PositiveSmallIntegerField(default=5)),
                ('image_url', models.URLField(blank=True)),
                ('author', models.CharField(blank=True, max_length=150)),
                ('published', models.BooleanField(db_index=True, default=True)),
                ('views', models.PositiveIntegerField(default=0)),
                ('version', models.PositiveIntegerField(default=1)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True, db_index=True)),
            ],
            options={
                'verbose_name_plural': 'educational content',
            },
        ),
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('message', 'Message'), ('referral', 'Referral'), ('assessment', 'Assessment'), ('appointment', 'Appointment'), ('alert', 'Alert'), ('system', 'System'), ('reminder', 'Reminder')], max_length=20)),
                ('title', models.CharField(max_length=255)),
                ('body', models.TextField()),
                ('priority', models.CharField(choices=[('low', 'Low'), ('normal', 'Normal'), ('high', 'High'), ('critical', 'Critical')], default='normal', max_length=10)),
                ('data', models.JSONField(blank=True, default=dict)),
                ('action_url', models.CharField(blank=True, max_length=255)),
                ('read_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('related_assessment', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to='core.assessment')),
                ('related_referral', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to='core.referral')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [models.Index(fields=['user', 'read_at', 'created_at'], name='notification_user_read_idx')],
            },
        ),
        migrations.CreateModel(
            name='NotificationPreference',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('channel', models.CharField(choices=[('email', 'Email'), ('sms', 'SMS'), ('push', 'Push'), ('in_app', 'In-app')], default='in_app', max_length=10)),
                ('notification_type', models.CharField(choices=[('message', 'Message'), ('referral', 'Referral'), ('assessment', 'Assessment'), ('appointment', 'Appointment'), ('alert', 'Alert'), ('system', 'System'), ('reminder', 'Reminder')], max_length=20)),
                ('is_enabled', models.BooleanField(default=True)),
                ('options', models.JSONField(blank=True, default=dict)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notification_preferences', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'unique_together': {('user', 'channel', 'notification_type')},
            },
        ),
        migrations.CreateModel(
            name='SmsLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('phone', models.CharField(max_length=30)),
                ('subject', models.CharField(max_length=255)),
                ('message', models.TextField()),
                ('data', models.JSONField(blank=True, default=dict)),
                ('driver', models.CharField(default='mock', max_length=20)),
                ('status', models.CharField(choices=[('queued', 'Queued'), ('sent', 'Sent'), ('delivered', 'Delivered'), ('failed', 'Failed')], default='sent', max_length=10)),
                ('external_id', models.CharField(blank=True, db_index=True, max_length=100)),
                ('error_message', models.TextField(blank=True)),
                ('sent_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sms_logs', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='PushNotificationLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=255)),
                ('body', models.TextField()),
                ('data', models.JSONField(blank=True, default=dict)),
                ('driver', models.CharField(default='mock', max_length=20)),
                ('status', models.CharField(choices=[('queued', 'Queued'), ('sent', 'Sent'), ('delivered', 'Delivered'), ('failed', 'Failed')], default='sent', max_length=10)),
                ('platform', models.CharField(choices=[('web', 'Web'), ('ios', 'iOS'), ('android', 'Android')], default='web', max_length=10)),
                ('device_token', models.CharField(blank=True, max_length=255)),
                ('external_id', models.CharField(blank=True, db_index=True, max_length=100)),
                ('error_message', models.TextField(blank=True)),
                ('sent_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='push_logs', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='AuditEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(max_length=64)),
                ('object_type', models.CharField(blank=True, max_length=64, null=True)),
                ('object_id', models.IntegerField(blank=True, null=True)),
                ('detail', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [
                    models.Index(fields=['action', 'created_at'], name='audit_action_idx'),
                    models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_idx'),
                ],
            },
        ),
    ]
