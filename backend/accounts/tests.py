from types import SimpleNamespace

from django.test import TestCase
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from .models import Member, Provider, get_member, get_student
from .permissions import IsPlatformAdmin, IsProviderStaff, IsStudent

User = get_user_model()


class MemberModelTests(TestCase):
    def setUp(self):
        self.provider = Provider.objects.create(name='North Clinic', code='north')
        self.other_provider = Provider.objects.create(name='South Clinic', code='south')

    def make_member(self, username, role, provider=None, **user_fields):
        user = User.objects.create_user(username=username, password='password', **user_fields)
        return Member.objects.create(user=user, role=role, provider=provider)

    def test_display_name(self):
        member = self.make_member('plain', Member.Role.STUDENT)
        self.assertEqual(str(member), 'plain')
        self.assertEqual(member.display_name, 'plain')
        named = self.make_member('named', Member.Role.STUDENT, first_name='Jane', last_name='Roe')
        self.assertEqual(named.display_name, 'Jane Roe')

    def test_role_flags(self):
        student = self.make_member('student', Member.Role.STUDENT, self.provider)
        staff = self.make_member('staff', Member.Role.PROVIDER_USER, self.provider)
        self.assertTrue(student.is_student)
        self.assertFalse(student.is_provider_staff)
        self.assertTrue(staff.is_provider_staff)

    def test_can_manage_is_scoped_to_provider(self):
        student = self.make_member('student', Member.Role.STUDENT, self.provider)
        same = self.make_member('same', Member.Role.PROVIDER_ADMIN, self.provider)
        other = self.make_member('other', Member.Role.PROVIDER_USER, self.other_provider)
        admin = self.make_member('admin', Member.Role.ADMIN)
        peer = self.make_member('peer', Member.Role.STUDENT, self.provider)
        self.assertTrue(same.can_manage(student))
        self.assertFalse(other.can_manage(student))
        self.assertTrue(admin.can_manage(student))
        self.assertFalse(peer.can_manage(student))

    def test_staff_without_provider_manages_nobody(self):
        orphan_student = self.make_member('orphan', Member.Role.STUDENT)
        staff = self.make_member('staff', Member.Role.PROVIDER_USER)
        self.assertFalse(staff.can_manage(orphan_student))

    def test_get_member_returns_none_without_profile(self):
        user = User.objects.create_user(username='bare', password='password')
        self.assertIsNone(get_member(user))

    def test_get_student_rejects_non_students(self):
        student = self.make_member('student', Member.Role.STUDENT, self.provider)
        staff = self.make_member('staff', Member.Role.PROVIDER_USER, self.provider)
        self.assertEqual(get_student(student.id), student)
        with self.assertRaises(Member.DoesNotExist):
            get_student(staff.id)
        with self.assertRaises(Member.DoesNotExist):
            get_student(999999)


class RolePermissionTests(TestCase):
    def check(self, permission_class, user):
        request = SimpleNamespace(user=user)
        return permission_class().has_permission(request, None)

    def test_permissions_follow_member_role(self):
        provider = Provider.objects.create(name='North Clinic', code='north')
        admin = Member.objects.create(user=User.objects.create_user(username='admin'), role=Member.Role.ADMIN)
        staff = Member.objects.create(
            user=User.objects.create_user(username='staff'), role=Member.Role.PROVIDER_ADMIN, provider=provider
        )
        student = Member.objects.create(
            user=User.objects.create_user(username='student'), role=Member.Role.STUDENT, provider=provider
        )
        bare = User.objects.create_user(username='bare')

        self.assertTrue(self.check(IsPlatformAdmin, admin.user))
        self.assertFalse(self.check(IsPlatformAdmin, staff.user))
        self.assertTrue(self.check(IsProviderStaff, admin.user))
        self.assertTrue(self.check(IsProviderStaff, staff.user))
        self.assertFalse(self.check(IsProviderStaff, student.user))
        self.assertTrue(self.check(IsStudent, student.user))
        self.assertFalse(self.check(IsStudent, bare))
        self.assertFalse(self.check(IsStudent, AnonymousUser()))

    def test_superuser_counts_as_platform_admin(self):
        root = User.objects.create_superuser(username='root', password='password')
        self.assertTrue(self.check(IsPlatformAdmin, root))
        self.assertFalse(self.check(IsStudent, root))
