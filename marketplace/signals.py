"""
Django signals for the trade lifecycle and reputation engine.

Two kinds of signal live here:

- Outbound hooks (``trade_completed``, ``trade_cancelled``,
  ``loyalty_points_credited``) sent by the services once their transaction
  has committed. An external notification collaborator connects to them; the
  default receivers below only log.
- post_save / post_delete receivers on Rating that keep the reviewee's
  ``average_rating`` and ``total_ratings`` in sync with the ratings table.
"""

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Avg, Count
from django.db.models.signals import post_delete, post_save
from django.dispatch import Signal, receiver

from .models import Rating, User

logger = logging.getLogger(__name__)

# Sent with ``trade``.
trade_completed = Signal()

# Sent with ``trade`` and ``actor_id``.
trade_cancelled = Signal()

# Sent with ``user``, ``points``, ``rating`` and ``badge_changed``.
loyalty_points_credited = Signal()


@receiver(trade_completed)
def notify_trade_completed(sender, trade, **kwargs):
    logger.info(
        f"Trade completed notification queued. Trade ID: {trade.pk}, "
        f"Participants: {trade.requester_id}, {trade.owner_id}"
    )


@receiver(trade_cancelled)
def notify_trade_cancelled(sender, trade, actor_id=None, **kwargs):
    logger.info(
        f"Trade cancelled notification queued. Trade ID: {trade.pk}, "
        f"Cancelled by: {actor_id}"
    )


@receiver(loyalty_points_credited)
def notify_loyalty_points_credited(sender, user, points, badge_changed=False, **kwargs):
    message = (
        f"Loyalty points notification queued. User ID: {user.pk}, "
        f"Points: +{points}, Total: {user.loyalty_points}"
    )
    if badge_changed:
        message += f", New badge: {user.badge}"
    logger.info(message)


def recalculate_user_rating(user_id):
    """
    Recompute ``average_rating`` and ``total_ratings`` for one user.

    Must be called inside a transaction; the user row is locked while the
    aggregates are written.

    Returns:
        User: The updated user
    """
    user = User.objects.select_for_update().get(pk=user_id)

    stats = Rating.objects.filter(reviewee_id=user_id).aggregate(
        avg=Avg('rating'),
        count=Count('id')
    )

    if stats['avg'] is not None:
        user.average_rating = Decimal(str(stats['avg'])).quantize(Decimal('0.01'))
    else:
        user.average_rating = Decimal('0.00')
    user.total_ratings = stats['count']
    user.save(update_fields=['average_rating', 'total_ratings'])
    return user


@receiver(post_save, sender=Rating)
def update_ratings_on_rating_save(sender, instance, created, **kwargs):
    """
    Refresh the reviewee's rating aggregates when a rating is created or updated.

    Runs inside the same transaction as the Rating save; if it fails, the
    rating write is rolled back too.
    """
    try:
        with transaction.atomic():
            user = recalculate_user_rating(instance.reviewee_id)

            action = "created" if created else "updated"
            logger.info(
                f"Updated ratings for rating {instance.id} ({action}): "
                f"reviewee={user.pk}, average={user.average_rating}, total={user.total_ratings}"
            )

    except Exception as e:
        logger.error(
            f"Error updating ratings for rating {instance.id}: {e}",
            exc_info=True
        )
        raise


@receiver(post_delete, sender=Rating)
def update_ratings_on_rating_delete(sender, instance, **kwargs):
    """
    Refresh the reviewee's rating aggregates after a rating is deleted.

    Loyalty points are left untouched.
    """
    try:
        with transaction.atomic():
            if not User.objects.filter(pk=instance.reviewee_id).exists():
                # Reviewee deleted in the same cascade
                return

            user = recalculate_user_rating(instance.reviewee_id)

            logger.info(
                f"Updated ratings after deleting rating {instance.id}: "
                f"reviewee={user.pk}, average={user.average_rating}, total={user.total_ratings}"
            )

    except Exception as e:
        logger.error(
            f"Error updating ratings after deleting rating {instance.id}: {e}",
            exc_info=True
        )
        raise
