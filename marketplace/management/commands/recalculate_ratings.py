# Recalculate Ratings Management Command
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db.models import Avg, Count

from marketplace.models import Rating, User
from marketplace.reputation import badge_for_points


class Command(BaseCommand):
    help = 'Recalculates user rating aggregates and badges to ensure data consistency.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Run the command without saving changes to the database.',
        )
        parser.add_argument(
            '--ratings-only',
            action='store_true',
            help='Recalculate only average_rating and total_ratings.',
        )
        parser.add_argument(
            '--badges-only',
            action='store_true',
            help='Re-derive only badges from loyalty points.',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=1000,
            help='Batch size for bulk processing.',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        batch_size = options['batch_size']

        process_ratings = not options['badges_only']
        process_badges = not options['ratings_only']

        self.stdout.write('Recalculating user reputation...')
        users = User.objects.all().iterator(chunk_size=batch_size)
        update_fields = []
        if process_ratings:
            update_fields += ['average_rating', 'total_ratings']
        if process_badges:
            update_fields.append('badge')

        updates = []
        count = 0
        changed = 0

        for user in users:
            updated = False

            if process_ratings:
                stats = Rating.objects.filter(reviewee=user).aggregate(
                    avg=Avg('rating'),
                    total=Count('id')
                )
                raw_avg = stats['avg']
                if raw_avg is None:
                    new_avg = Decimal('0.00')
                else:
                    new_avg = Decimal(str(raw_avg)).quantize(Decimal('0.01'))
                new_total = stats['total'] or 0

                if abs(user.average_rating - new_avg) > Decimal('0.001') or user.total_ratings != new_total:
                    if dry_run:
                        self.stdout.write(
                            f'  [DRY-RUN] User {user.id}: Rating {user.average_rating} -> {new_avg}, '
                            f'Count {user.total_ratings} -> {new_total}'
                        )
                    user.average_rating = new_avg
                    user.total_ratings = new_total
                    updated = True

            if process_badges:
                new_badge = badge_for_points(user.loyalty_points)
                if user.badge != new_badge:
                    if dry_run:
                        self.stdout.write(f'  [DRY-RUN] User {user.id}: Badge {user.badge} -> {new_badge}')
                    user.badge = new_badge
                    updated = True

            if updated:
                updates.append(user)
                changed += 1

            if len(updates) >= batch_size:
                if not dry_run:
                    User.objects.bulk_update(updates, update_fields)
                updates = []

            count += 1
            if count % 100 == 0:
                self.stdout.write(f'Processed {count} users...')

        if updates and not dry_run:
            User.objects.bulk_update(updates, update_fields)

        self.stdout.write(f'Processed {count} users total, {changed} needed updates.')

        if dry_run:
            self.stdout.write(self.style.SUCCESS('Dry run completed. No changes saved.'))
        else:
            self.stdout.write(self.style.SUCCESS('Recalculation completed successfully.'))
