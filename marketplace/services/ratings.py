"""
Rating ledger: ratings on completed trades and loyalty-point bookkeeping.

This module is the only writer of ``User.loyalty_points`` and ``User.badge``.
Points are credited once per (trade, reviewer), recorded as a LoyaltyCredit
when the first rating is created. Editing or deleting a rating never takes
points away, and rating again after a delete never adds them twice.
"""

import logging
from decimal import Decimal

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count

from ..exceptions import (
    AlreadyRatedError,
    AuthorizationError,
    NotFoundError,
    RevieweeMismatchError,
    SelfRatingError,
    StateConflictError,
    ValidationError,
)
from ..models import LoyaltyCredit, Rating, Trade, User
from ..reputation import badge_for_points, points_for_stars
from ..signals import loyalty_points_credited

logger = logging.getLogger(__name__)


def resolve_reviewee(trade, actor_id):
    """
    Return the id of the user ``actor_id`` should rate on ``trade``.

    The requester received the requested item, so rates its owner; the owner
    received the offered item, so rates the requester.

    Raises:
        AuthorizationError: If ``actor_id`` is not a participant
    """
    if actor_id == trade.requester_id:
        return trade.owner_id
    if actor_id == trade.owner_id:
        return trade.requester_id
    raise AuthorizationError('Only participants of this trade can rate it.')


def validate_stars(stars):
    if isinstance(stars, bool) or not isinstance(stars, int):
        raise ValidationError('Rating must be a whole number of stars.', code='invalid_rating')
    if not 1 <= stars <= 5:
        raise ValidationError('Rating must be between 1 and 5.', code='invalid_rating')
    return stars


def validate_comment(comment):
    if comment is None:
        return ''
    max_length = getattr(settings, 'RATING_COMMENT_MAX_LENGTH', 500)
    if len(comment) > max_length:
        raise ValidationError(
            f'Comment cannot exceed {max_length} characters.',
            code='comment_too_long'
        )
    return comment


def credit_loyalty_points(user_id, points, rating=None):
    """
    Add ``points`` to a user and re-derive their badge.

    Must run inside the transaction that persisted ``rating``. The
    ``loyalty_points_credited`` hook fires once that transaction commits.
    """
    user = User.objects.select_for_update().get(pk=user_id)

    old_badge = user.badge
    user.loyalty_points += points
    user.badge = badge_for_points(user.loyalty_points)
    user.save(update_fields=['loyalty_points', 'badge'])

    badge_changed = user.badge != old_badge
    logger.info(
        f"Loyalty points credited. User ID: {user.pk}, Points: +{points}, "
        f"Total: {user.loyalty_points}, Badge: {user.badge}"
    )
    if badge_changed:
        logger.info(f"Badge changed. User ID: {user.pk}, Old Badge: {old_badge}, New Badge: {user.badge}")

    transaction.on_commit(
        lambda: loyalty_points_credited.send(
            sender=User,
            user=user,
            points=points,
            rating=rating,
            badge_changed=badge_changed,
        )
    )
    return user


def _coerce_user_id(value):
    if isinstance(value, bool):
        raise ValidationError('Reviewee must be a user id.', code='invalid_reviewee')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError('Reviewee must be a user id.', code='invalid_reviewee')


def submit_rating(trade_id, reviewer, stars, comment='', reviewee_id=None):
    """
    Rate the counterpart of a completed trade.

    The reviewee is always computed from the trade; a caller-supplied
    ``reviewee_id`` is only checked against it. The first rating a reviewer
    submits for a trade credits the reviewee ``stars * LOYALTY_POINTS_PER_STAR``
    points in the same transaction. A rating submitted again after the first
    was deleted is stored, but earns no further points.

    Returns:
        Rating: The persisted rating

    Raises:
        NotFoundError, AuthorizationError, SelfRatingError, StateConflictError,
        ValidationError, RevieweeMismatchError, AlreadyRatedError
    """
    try:
        trade = Trade.objects.get(pk=trade_id)
    except Trade.DoesNotExist:
        raise NotFoundError(f'Trade with ID {trade_id} does not exist.')

    expected_reviewee_id = resolve_reviewee(trade, reviewer.pk)

    if reviewee_id is not None:
        reviewee_id = _coerce_user_id(reviewee_id)

    if reviewee_id == reviewer.pk or expected_reviewee_id == reviewer.pk:
        raise SelfRatingError()

    if trade.status != Trade.Status.COMPLETED:
        raise StateConflictError(
            f'Only completed trades can be rated; this trade is {trade.status.lower()}.',
            code='trade_not_completed'
        )

    stars = validate_stars(stars)
    comment = validate_comment(comment)

    if reviewee_id is not None and reviewee_id != expected_reviewee_id:
        raise RevieweeMismatchError()

    if Rating.objects.filter(trade=trade, reviewer=reviewer).exists():
        raise AlreadyRatedError()

    points = points_for_stars(stars)
    try:
        with transaction.atomic():
            rating = Rating.objects.create(
                trade=trade,
                reviewer=reviewer,
                reviewee_id=expected_reviewee_id,
                rating=stars,
                comment=comment,
            )

            already_credited = LoyaltyCredit.objects.filter(
                trade=trade,
                reviewer=reviewer
            ).exists()
            if not already_credited:
                LoyaltyCredit.objects.create(
                    trade=trade,
                    reviewer=reviewer,
                    reviewee_id=expected_reviewee_id,
                    points=points,
                )
                credit_loyalty_points(expected_reviewee_id, points, rating=rating)
    except IntegrityError:
        # A concurrent submission for the same (trade, reviewer) won the constraint
        logger.warning(
            f"Duplicate rating rejected by constraint. Trade ID: {trade.pk}, Reviewer ID: {reviewer.pk}"
        )
        raise AlreadyRatedError()

    if already_credited:
        logger.info(
            f"Rating resubmitted without points. Trade ID: {trade.pk}, Reviewer ID: {reviewer.pk}"
        )

    logger.info(
        f"Rating submitted. Rating ID: {rating.pk}, Trade ID: {trade.pk}, "
        f"Reviewer ID: {reviewer.pk}, Reviewee ID: {expected_reviewee_id}, Stars: {stars}"
    )
    return rating


def _get_own_rating(actor, rating_id):
    try:
        rating = Rating.objects.select_for_update().get(pk=rating_id)
    except Rating.DoesNotExist:
        raise NotFoundError(f'Rating with ID {rating_id} does not exist.')

    if rating.reviewer_id != actor.pk:
        raise AuthorizationError('You can only modify your own ratings.')

    return rating


def update_rating(actor, rating_id, stars=None, comment=None):
    """
    Edit the stars or comment of a rating the actor wrote.

    Loyalty points are not adjusted.
    """
    with transaction.atomic():
        rating = _get_own_rating(actor, rating_id)

        update_fields = ['updated_at']
        if stars is not None:
            rating.rating = validate_stars(stars)
            update_fields.append('rating')
        if comment is not None:
            rating.comment = validate_comment(comment)
            update_fields.append('comment')

        rating.save(update_fields=update_fields)

    logger.info(f"Rating updated. Rating ID: {rating.pk}, Reviewer ID: {actor.pk}")
    return rating


def delete_rating(actor, rating_id):
    """Delete a rating the actor wrote. Loyalty points are kept."""
    with transaction.atomic():
        rating = _get_own_rating(actor, rating_id)
        rating.delete()

    logger.info(f"Rating deleted. Rating ID: {rating_id}, Reviewer ID: {actor.pk}")


def ratings_received(user_id):
    return Rating.objects.filter(
        reviewee_id=user_id
    ).select_related('reviewer', 'trade').order_by('-created_at')


def get_stats(user_id):
    """
    Aggregate the ratings ``user_id`` has received.

    Returns:
        dict: ``average_rating`` (Decimal, two places), ``total_ratings`` and
        ``rating_distribution`` keyed '1'..'5'

    Raises:
        NotFoundError: If the user does not exist
    """
    if not User.objects.filter(pk=user_id).exists():
        raise NotFoundError(f'User with ID {user_id} does not exist.')

    ratings = Rating.objects.filter(reviewee_id=user_id)
    totals = ratings.aggregate(avg=Avg('rating'), count=Count('id'))

    if totals['avg'] is not None:
        average = Decimal(str(totals['avg'])).quantize(Decimal('0.01'))
    else:
        average = Decimal('0.00')

    distribution_data = ratings.order_by().values('rating').annotate(count=Count('id'))
    distribution = {str(i): 0 for i in range(1, 6)}
    for row in distribution_data:
        distribution[str(row['rating'])] = row['count']

    return {
        'average_rating': average,
        'total_ratings': totals['count'],
        'rating_distribution': distribution,
    }
