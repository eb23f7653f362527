from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='RecordCategory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('slug', models.SlugField(max_length=255, unique=True)),
            ],
            options={'ordering': ['name'], 'verbose_name_plural': 'record categories'},
        ),
        migrations.CreateModel(
            name='MedicalRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('source_uid', models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ('patient_name', models.CharField(blank=True, max_length=255, null=True)),
                ('age', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('gender', models.CharField(blank=True, max_length=20, null=True)),
                ('chief_complaints', models.TextField(blank=True, null=True)),
                ('case_description', models.TextField(blank=True, null=True)),
                ('difficulty_level', models.PositiveSmallIntegerField(choices=[(1, 'Level 1'), (2, 'Level 2'), (3, 'Level 3')], default=1)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('category', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='records', to='questionbank.recordcategory')),
            ],
        ),
        migrations.AddIndex(
            model_name='medicalrecord',
            index=models.Index(fields=['category', 'is_active'], name='qb_record_cat_active_idx'),
        ),
        migrations.CreateModel(
            name='RecordCode',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(max_length=30)),
                ('description', models.TextField(blank=True, null=True)),
                ('comment_wrong', models.TextField(blank=True, null=True)),
                ('comment_missing', models.TextField(blank=True, null=True)),
                ('is_required', models.BooleanField(default=True)),
                ('sort_order', models.PositiveSmallIntegerField(default=1)),
                ('record', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='codes', to='questionbank.medicalrecord')),
            ],
            options={'ordering': ['sort_order', 'id']},
        ),
        migrations.AddConstraint(
            model_name='recordcode',
            constraint=models.UniqueConstraint(fields=('record', 'code'), name='unique_record_code'),
        ),
    ]
