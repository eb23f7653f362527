from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from practice.models import Assignment
from practice.submission import audit_assignments


class Command(BaseCommand):
    help = 'Check that every assignment agrees with its stored attempts. Nothing is repaired.'

    def add_arguments(self, parser):
        parser.add_argument('--student', type=int, help='Only assignments of this student.')
        parser.add_argument('--chunk', type=int, default=settings.PRACTICE_ALLOCATION_CHUNK_SIZE)

    def handle(self, *args, **options):
        assignments = Assignment.objects.all()
        if options['student'] is not None:
            assignments = assignments.filter(student_id=options['student'])

        found = 0
        for assignment, problem in audit_assignments(assignments, chunk_size=options['chunk']):
            found += 1
            self.stderr.write(f'assignment {assignment.id}: {problem}')

        if found:
            raise CommandError(f'{found} inconsistent assignment(s) found.')
        self.stdout.write(self.style.SUCCESS('All assignments are consistent.'))
