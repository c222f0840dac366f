"""
Django management command to reopen seats left occupied by orders that
have since been paid or voided.
"""
from django.core.management.base import BaseCommand
from floor.services import SeatService


class Command(BaseCommand):
    help = 'Reopen occupied seats whose orders are all paid or void, and re-derive table statuses'

    def handle(self, *args, **options):
        cleared = SeatService.cleanup_paid_seats()
        self.stdout.write(self.style.SUCCESS(f'Cleared {cleared} seat(s) that had paid orders.'))
