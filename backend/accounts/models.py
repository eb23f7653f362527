from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import models


class Provider(models.Model):
    name = models.CharField(max_length=255)
    code = models.SlugField(max_length=64, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class Member(models.Model):
    class Role(models.TextChoices):
        ADMIN = 'admin', 'Platform admin'
        PROVIDER_ADMIN = 'provider_admin', 'Provider admin'
        PROVIDER_USER = 'provider_user', 'Provider user'
        STUDENT = 'student', 'Student'

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE)
    role = models.CharField(max_length=32, choices=Role.choices, default=Role.PROVIDER_USER)
    provider = models.ForeignKey(
        Provider,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='members',
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['provider', 'role'], name='accounts_member_prov_role_idx')]

    def __str__(self) -> str:
        return self.user.get_username()

    @property
    def username(self) -> str:
        return self.user.get_username()

    @property
    def display_name(self) -> str:
        first_name = self.user.first_name or ''
        last_name = self.user.last_name or ''
        name = f"{first_name} {last_name}".strip()
        return name or self.username

    @property
    def is_student(self) -> bool:
        return self.role == self.Role.STUDENT

    @property
    def is_provider_staff(self) -> bool:
        return self.role in (self.Role.PROVIDER_ADMIN, self.Role.PROVIDER_USER)

    def can_manage(self, student: 'Member') -> bool:
        """Whether this member may allocate to or configure ``student``."""
        if self.role == self.Role.ADMIN or self.user.is_superuser:
            return True
        return self.is_provider_staff and self.provider_id is not None and self.provider_id == student.provider_id


User = get_user_model()


def get_member(user: User):
    """Return the user's Member, or None for users without a platform profile."""
    try:
        return user.member
    except Member.DoesNotExist:
        return None


def get_student(student_id) -> Member:
    """Return the student Member with ``student_id``.

    Raises ``Member.DoesNotExist`` when the id is unknown or the member is not a student.
    """
    return Member.objects.select_related('user', 'provider').get(id=student_id, role=Member.Role.STUDENT)
