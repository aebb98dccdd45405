import json
from pathlib import Path

from decouple import config
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from apps.deals.workflow import (
    DealFormInvalid,
    DealSubmissionError,
    open_submission_context,
    submit_post_deal,
)


class Command(BaseCommand):
    help = 'Submits a Post a Deal form (JSON file) through the deals API'

    def add_arguments(self, parser):
        parser.add_argument('form_file', help='Path to a JSON file with the wizard form values')
        parser.add_argument('--token', default=None, help='Supabase access token (default: AGENTSPACE_ACCESS_TOKEN)')
        parser.add_argument('--base-url', default=None, help='API base URL (default: BACKEND_API_URL)')
        parser.add_argument('--agent-id', default=None, help='Post on behalf of a downline agent')

    def handle(self, *args, **options):
        path = Path(options['form_file'])
        try:
            form = json.loads(path.read_text())
        except (OSError, ValueError) as e:
            raise CommandError(f'Could not read form file {path}: {e}') from e
        if not isinstance(form, dict):
            raise CommandError('Form file must contain a JSON object')

        token = options['token'] or config('AGENTSPACE_ACCESS_TOKEN', default='')
        if not token:
            raise CommandError('An access token is required (--token or AGENTSPACE_ACCESS_TOKEN)')

        base_url = options['base_url'] or settings.BACKEND_API_URL
        try:
            ctx = open_submission_context(base_url=base_url, token=token)
        except DealSubmissionError as e:
            raise CommandError(f'Could not load form options: {e.message}') from e

        try:
            result = submit_post_deal(ctx, form, agent_id=options['agent_id'])
        except DealFormInvalid as e:
            for field_name, message in e.errors.items():
                self.stdout.write(self.style.ERROR(f'✗ {field_name}: {message}'))
            raise CommandError('Form is invalid; nothing was submitted') from e
        except DealSubmissionError as e:
            hint = ' (retry)' if e.retryable else ''
            raise CommandError(f'{e.message}{hint}') from e
        finally:
            ctx.runner.close(wait=True)
            ctx.client.close()

        self.stdout.write(self.style.SUCCESS(f'✓ Deal {result.deal_id} {result.operation}'))
        self.stdout.write(result.message)
        if result.warning:
            self.stdout.write(self.style.WARNING(result.warning))
