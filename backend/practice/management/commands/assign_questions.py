from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from accounts.models import Member
from practice.allocation import assign_all, plan_assign_all, resolve_max_attempts
from practice.exceptions import PracticeError

MIN_CHUNK = 50


class Command(BaseCommand):
    help = 'Assign every eligible medical record to students that do not have it yet.'

    def add_arguments(self, parser):
        parser.add_argument('--provider', type=int, help='Only students of this provider.')
        parser.add_argument('--student', type=int, help='Only this student.')
        parser.add_argument('--category', type=int, help='Only records of this category.')
        parser.add_argument('--include-inactive', action='store_true', help='Also assign inactive records.')
        parser.add_argument('--max-attempts', type=int, default=None)
        parser.add_argument('--chunk', type=int, default=settings.PRACTICE_ALLOCATION_CHUNK_SIZE)
        parser.add_argument('--dry-run', action='store_true', help='Report counts without writing.')

    def handle(self, *args, **options):
        try:
            max_attempts = resolve_max_attempts(options['max_attempts'])
        except PracticeError as exc:
            raise CommandError(exc.detail)
        chunk = max(MIN_CHUNK, options['chunk'])

        students = Member.objects.filter(role=Member.Role.STUDENT).order_by('id')
        if options['provider'] is not None:
            students = students.filter(provider_id=options['provider'])
        if options['student'] is not None:
            students = students.filter(id=options['student'])
            if not students.exists():
                raise CommandError(f"Student {options['student']} not found for the given filters.")

        totals = {'students': 0, 'created': 0, 'skipped': 0}
        for student in students.iterator(chunk_size=chunk):
            try:
                if options['dry_run']:
                    result = plan_assign_all(student.id, options['category'], options['include_inactive'])
                else:
                    result = assign_all(
                        student.id,
                        category_id=options['category'],
                        include_inactive=options['include_inactive'],
                        max_attempts=max_attempts,
                        chunk_size=chunk,
                    )
            except PracticeError as exc:
                raise CommandError(exc.detail)
            totals['students'] += 1
            totals['created'] += result['created']
            totals['skipped'] += result['skipped']
            if options['verbosity'] > 1:
                self.stdout.write(f"student {student.id}: created={result['created']} skipped={result['skipped']}")

        prefix = '[dry run] ' if options['dry_run'] else ''
        self.stdout.write(self.style.SUCCESS(
            f"{prefix}students={totals['students']} created={totals['created']} skipped={totals['skipped']}"
        ))
