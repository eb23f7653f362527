from django.db import models


class RecordCategory(models.Model):
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)

    class Meta:
        ordering = ['name']
        verbose_name_plural = 'record categories'

    def __str__(self) -> str:
        return self.name


class MedicalRecord(models.Model):
    class Difficulty(models.IntegerChoices):
        LEVEL_1 = 1, 'Level 1'
        LEVEL_2 = 2, 'Level 2'
        LEVEL_3 = 3, 'Level 3'

    category = models.ForeignKey(RecordCategory, on_delete=models.CASCADE, related_name='records')
    source_uid = models.CharField(max_length=64, unique=True, null=True, blank=True)
    patient_name = models.CharField(max_length=255, blank=True, null=True)
    age = models.PositiveSmallIntegerField(null=True, blank=True)
    gender = models.CharField(max_length=20, blank=True, null=True)
    chief_complaints = models.TextField(blank=True, null=True)
    case_description = models.TextField(blank=True, null=True)
    difficulty_level = models.PositiveSmallIntegerField(choices=Difficulty.choices, default=Difficulty.LEVEL_1)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['category', 'is_active'], name='qb_record_cat_active_idx'),
        ]

    def __str__(self) -> str:
        return f"Record {self.id} ({self.category.name})"

    @property
    def display_label(self) -> str:
        return self.patient_name or f"Record {self.id}"


class RecordCode(models.Model):
    record = models.ForeignKey(MedicalRecord, on_delete=models.CASCADE, related_name='codes')
    code = models.CharField(max_length=30)
    description = models.TextField(blank=True, null=True)
    comment_wrong = models.TextField(blank=True, null=True)
    comment_missing = models.TextField(blank=True, null=True)
    is_required = models.BooleanField(default=True)
    sort_order = models.PositiveSmallIntegerField(default=1)

    class Meta:
        ordering = ['sort_order', 'id']
        constraints = [
            models.UniqueConstraint(fields=['record', 'code'], name='unique_record_code')
        ]

    def __str__(self) -> str:
        return f"{self.code} ({self.record_id})"

    def save(self, *args, **kwargs):
        self.code = (self.code or '').strip().upper()
        return super().save(*args, **kwargs)
