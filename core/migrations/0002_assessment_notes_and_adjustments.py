import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='assessment',
            name='version_counter',
            field=models.PositiveIntegerField(default=1),
        ),
        migrations.CreateModel(
            name='AssessmentComment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('comment', models.TextField()),
                ('comment_type', models.CharField(choices=[('clinical_note', 'Clinical note'), ('comment', 'Comment')], default='clinical_note', max_length=20)),
                ('visibility', models.CharField(choices=[('private', 'Private'), ('internal', 'Internal'), ('shared', 'Shared with patient')], default='internal', max_length=10)),
                ('is_resolved', models.BooleanField(default=False)),
                ('resolved_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assessment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='comments', to='core.assessment')),
                ('parent', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='replies', to='core.assessmentcomment')),
                ('user', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assessment_comments', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='AssessmentRiskAdjustment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('old_score', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('old_level', models.CharField(blank=True, max_length=20)),
                ('new_score', models.PositiveSmallIntegerField()),
                ('new_level', models.CharField(max_length=20)),
                ('difference', models.IntegerField(blank=True, null=True)),
                ('justification', models.TextField()),
                ('alert_triggered', models.BooleanField(default=False)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('adjusted_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='risk_adjustments', to=settings.AUTH_USER_MODEL)),
                ('assessment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='risk_adjustments', to='core.assessment')),
            ],
        ),
    ]
