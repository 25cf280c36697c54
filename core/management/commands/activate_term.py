# core/management/commands/activate_term.py
from django.core.management.base import BaseCommand, CommandError

from core.exceptions import CurriculumError
from core.services import TermService


class Command(BaseCommand):
    help = 'Activate an academic term and move students to their new study semester'

    def add_arguments(self, parser):
        parser.add_argument('code', help='Term code, e.g. 2024/1')
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Only show what would change',
        )

    def handle(self, *args, **options):
        try:
            plan = TermService.plan_activation(options['code'])
        except CurriculumError as e:
            raise CommandError(e.message)

        for change in plan.changes:
            suffix = ' (graduates)' if change.graduates else ''
            self.stdout.write(
                f'{change.name}: semester {change.old_semester} -> {change.new_semester}{suffix}'
            )

        if options['dry_run']:
            self.stdout.write(self.style.WARNING(
                f'Dry run: {plan.updated_count} students would move, '
                f'{plan.graduated_count} would graduate'
            ))
            return

        summary = TermService.apply_activation(plan, actor='manage.py')
        self.stdout.write(self.style.SUCCESS(
            f"Activated term: {summary['term']} "
            f"({summary['updated_count']} moved, {summary['graduated_count']} graduated)"
        ))
