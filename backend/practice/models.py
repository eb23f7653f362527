from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from accounts.models import Member
from questionbank.models import MedicalRecord, RecordCategory

MIN_ATTEMPTS = 1
MAX_ATTEMPTS = 10
MAX_QUESTIONS_PER_CATEGORY = 500


class CategorySetting(models.Model):
    student = models.ForeignKey(Member, on_delete=models.CASCADE, related_name='category_settings')
    category = models.ForeignKey(RecordCategory, on_delete=models.CASCADE, related_name='student_settings')
    questions_count = models.PositiveSmallIntegerField(default=0, validators=[MaxValueValidator(MAX_QUESTIONS_PER_CATEGORY)])
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['student', 'category'], name='unique_student_category_setting')
        ]

    def __str__(self) -> str:
        return f"{self.student}: {self.category} x{self.questions_count}"


class Assignment(models.Model):
    class Status(models.TextChoices):
        ASSIGNED = 'assigned', 'Assigned'
        COMPLETED = 'completed', 'Completed'
        LOCKED = 'locked', 'Locked'

    TERMINAL_STATUSES = (Status.COMPLETED, Status.LOCKED)

    student = models.ForeignKey(Member, on_delete=models.CASCADE, related_name='assignments')
    record = models.ForeignKey(MedicalRecord, on_delete=models.CASCADE, related_name='assignments')
    category = models.ForeignKey(RecordCategory, on_delete=models.CASCADE, related_name='assignments')
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ASSIGNED)
    attempts_used = models.PositiveSmallIntegerField(default=0)
    max_attempts = models.PositiveSmallIntegerField(
        default=3,
        validators=[MinValueValidator(MIN_ATTEMPTS), MaxValueValidator(MAX_ATTEMPTS)],
    )
    last_attempt_at = models.DateTimeField(null=True, blank=True)
    allocation_batch = models.UUIDField(null=True, blank=True, editable=False, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['student', 'record'], name='unique_student_record_assignment'),
            models.CheckConstraint(
                condition=models.Q(attempts_used__lte=models.F('max_attempts')),
                name='assignment_attempts_within_max',
            ),
        ]
        indexes = [
            models.Index(fields=['student', 'category', 'status'], name='practice_asg_stu_cat_st_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.student} -> record {self.record_id} ({self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    @property
    def attempts_remaining(self) -> int:
        return max(0, self.max_attempts - self.attempts_used)


class Attempt(models.Model):
    student = models.ForeignKey(Member, on_delete=models.CASCADE, related_name='attempts')
    record = models.ForeignKey(MedicalRecord, on_delete=models.CASCADE, related_name='attempts')
    assignment = models.ForeignKey(Assignment, on_delete=models.CASCADE, related_name='attempts')
    attempt_no = models.PositiveSmallIntegerField()
    submitted_codes = models.JSONField(default=list)
    is_correct = models.BooleanField(default=False)
    wrong_codes = models.JSONField(null=True, blank=True)
    missing_codes = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['assignment_id', 'attempt_no']
        constraints = [
            models.UniqueConstraint(fields=['assignment', 'attempt_no'], name='unique_assignment_attempt_no')
        ]
        indexes = [
            models.Index(fields=['student', 'record'], name='practice_att_stu_rec_idx'),
        ]

    def __str__(self) -> str:
        return f"Attempt {self.attempt_no} on assignment {self.assignment_id}"
