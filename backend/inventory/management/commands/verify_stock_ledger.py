"""
Django management command to check cached ingredient stock against the
stock movement ledger.
"""
from django.core.management.base import BaseCommand, CommandError
from inventory.models import Ingredient
from inventory.services import StockLedgerService


class Command(BaseCommand):
    help = 'Verify that each ingredient stock quantity equals the sum of its movements'

    def add_arguments(self, parser):
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Rewrite mismatched stock quantities from the ledger',
        )
        parser.add_argument(
            '--ingredient',
            type=int,
            help='Only check the ingredient with this id',
        )

    def handle(self, *args, **options):
        discrepancies = StockLedgerService.verify_projection(options.get('ingredient'))

        negatives = Ingredient.objects.filter(stock_quantity__lt=0)
        if options.get('ingredient'):
            negatives = negatives.filter(pk=options['ingredient'])
        for ingredient in negatives:
            self.stdout.write(
                self.style.WARNING(
                    f'Negative stock: {ingredient.name} = {ingredient.stock_quantity} {ingredient.unit}'
                )
            )

        if not discrepancies:
            self.stdout.write(self.style.SUCCESS('Stock ledger is consistent.'))
            return

        for d in discrepancies:
            self.stdout.write(
                f'{d.ingredient_name} (id {d.ingredient_id}): cached {d.cached_quantity}, '
                f'ledger {d.ledger_quantity}, difference {d.difference}'
            )

        if not options['fix']:
            raise CommandError(
                f'{len(discrepancies)} ingredient(s) disagree with the ledger. Re-run with --fix to repair.'
            )

        for d in discrepancies:
            StockLedgerService.rebuild_projection(d.ingredient_id)
        self.stdout.write(
            self.style.SUCCESS(f'Rebuilt {len(discrepancies)} stock quantities from the ledger.')
        )
