from django.contrib.auth.models import User

from accounts.models import Member, Provider
from practice.models import Assignment
from questionbank.models import MedicalRecord, RecordCategory, RecordCode


def make_member(username, role=Member.Role.STUDENT, provider=None):
    user = User.objects.create_user(username=username, password='pass123')
    return Member.objects.create(user=user, role=role, provider=provider)


def make_provider(code='north'):
    return Provider.objects.create(name=f'{code.title()} Clinic', code=code)


def make_category(name='Respiratory'):
    return RecordCategory.objects.create(name=name, slug=name.lower().replace(' ', '-'))


def make_record(category, codes=('J15.0', 'Z86.43'), is_active=True, **fields):
    record = MedicalRecord.objects.create(
        category=category,
        patient_name=fields.pop('patient_name', 'Patient'),
        is_active=is_active,
        **fields,
    )
    for order, code in enumerate(codes, start=1):
        RecordCode.objects.create(record=record, code=code, sort_order=order)
    return record


def make_assignment(student, record, max_attempts=3, **fields):
    return Assignment.objects.create(
        student=student,
        record=record,
        category=record.category,
        max_attempts=max_attempts,
        **fields,
    )
