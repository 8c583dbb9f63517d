from django.core.management.base import BaseCommand, CommandError

from quarryops.core.exceptions import NotFoundError, format_quantity
from quarryops.crusher.ledger import reconcile_run
from quarryops.crusher.models import CrusherRun


class Command(BaseCommand):
    help = 'Recomputes crusher run dispatched quantities from their dispatches and fixes drift'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report drift without saving changes',
        )
        parser.add_argument(
            '--run',
            type=int,
            dest='run_id',
            help='Only reconcile the crusher run with this id',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE: No changes will be saved."))

        if options['run_id'] is not None:
            run_ids = [options['run_id']]
        else:
            run_ids = list(CrusherRun.objects.order_by('pk').values_list('pk', flat=True))
        self.stdout.write(f"Reconciling {len(run_ids)} crusher runs...")

        drifted = 0
        corrected = 0
        for run_id in run_ids:
            try:
                result = reconcile_run(run_id, dry_run=dry_run)
            except NotFoundError as e:
                raise CommandError(e.message)

            if result.recorded == result.actual:
                continue
            drifted += 1
            line = (
                f"  - Run {run_id}: recorded {format_quantity(result.recorded)}, "
                f"dispatches sum {format_quantity(result.actual)}"
            )
            if result.corrected:
                corrected += 1
                self.stdout.write(self.style.SUCCESS(f"{line} -> corrected"))
            elif dry_run:
                self.stdout.write(self.style.NOTICE(line))
            else:
                self.stdout.write(self.style.ERROR(f"{line} -> exceeds produced quantity, fix dispatches manually"))

        if dry_run:
            self.stdout.write(self.style.WARNING(f"\nDry run complete. {drifted} runs out of balance."))
        else:
            self.stdout.write(self.style.SUCCESS(f"\nReconciliation complete. {corrected} of {drifted} drifted runs corrected."))
