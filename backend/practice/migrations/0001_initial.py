import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('accounts', '0001_initial'),
        ('questionbank', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='CategorySetting',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('questions_count', models.PositiveSmallIntegerField(default=0, validators=[django.core.validators.MaxValueValidator(500)])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('category', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='student_settings', to='questionbank.recordcategory')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='category_settings', to='accounts.member')),
            ],
        ),
        migrations.AddConstraint(
            model_name='categorysetting',
            constraint=models.UniqueConstraint(fields=('student', 'category'), name='unique_student_category_setting'),
        ),
        migrations.CreateModel(
            name='Assignment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('assigned', 'Assigned'), ('completed', 'Completed'), ('locked', 'Locked')], default='assigned', max_length=20)),
                ('attempts_used', models.PositiveSmallIntegerField(default=0)),
                ('max_attempts', models.PositiveSmallIntegerField(default=3, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(10)])),
                ('last_attempt_at', models.DateTimeField(blank=True, null=True)),
                ('allocation_batch', models.UUIDField(blank=True, db_index=True, editable=False, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('category', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assignments', to='questionbank.recordcategory')),
                ('record', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assignments', to='questionbank.medicalrecord')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assignments', to='accounts.member')),
            ],
        ),
        migrations.AddConstraint(
            model_name='assignment',
            constraint=models.UniqueConstraint(fields=('student', 'record'), name='unique_student_record_assignment'),
        ),
        migrations.AddConstraint(
            model_name='assignment',
            constraint=models.CheckConstraint(condition=models.Q(('attempts_used__lte', models.F('max_attempts'))), name='assignment_attempts_within_max'),
        ),
        migrations.AddIndex(
            model_name='assignment',
            index=models.Index(fields=['student', 'category', 'status'], name='practice_asg_stu_cat_st_idx'),
        ),
        migrations.CreateModel(
            name='Attempt',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('attempt_no', models.PositiveSmallIntegerField()),
                ('submitted_codes', models.JSONField(default=list)),
                ('is_correct', models.BooleanField(default=False)),
                ('wrong_codes', models.JSONField(blank=True, null=True)),
                ('missing_codes', models.JSONField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('assignment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='attempts', to='practice.assignment')),
                ('record', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='attempts', to='questionbank.medicalrecord')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='attempts', to='accounts.member')),
            ],
            options={'ordering': ['assignment_id', 'attempt_no']},
        ),
        migrations.AddConstraint(
            model_name='attempt',
            constraint=models.UniqueConstraint(fields=('assignment', 'attempt_no'), name='unique_assignment_attempt_no'),
        ),
        migrations.AddIndex(
            model_name='attempt',
            index=models.Index(fields=['student', 'record'], name='practice_att_stu_rec_idx'),
        ),
    ]
