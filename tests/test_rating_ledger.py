"""
Tests for the rating ledger.

Covers:
- Reviewee resolution from the trade
- Submission rules and the order they are checked in
- Loyalty-point crediting and badge promotion
- Update / delete by the original reviewer without touching points
- One loyalty credit per trade and reviewer, even after delete and resubmit
- Aggregate statistics
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.test import TestCase, override_settings

from marketplace.exceptions import (
    AlreadyRatedError,
    AuthorizationError,
    NotFoundError,
    RevieweeMismatchError,
    SelfRatingError,
    StateConflictError,
    ValidationError,
)
from marketplace.models import Item, LoyaltyCredit, Rating
from marketplace.reputation import Badge
from marketplace.services import ratings as rating_service
from marketplace.services import trade_requests as request_service
from marketplace.services import trades as trade_service
from marketplace.signals import loyalty_points_credited

User = get_user_model()


class RatingLedgerTestCase(TestCase):

    def setUp(self):
        # Alice owns the requested item; Bob requests it with his own item
        self.alice = User.objects.create_user(
            username='alice', email='alice@example.com', password='testpass123'
        )
        self.bob = User.objects.create_user(
            username='bob', email='bob@example.com', password='testpass123'
        )
        self.carol = User.objects.create_user(
            username='carol', email='carol@example.com', password='testpass123'
        )
        self.trade = self._make_trade(self.alice, self.bob, complete=True)

    def _make_trade(self, owner, requester, complete=False):
        requested_item = Item.objects.create(
            owner=owner, title='Bicycle', description='Blue', category='Sports',
            condition=Item.Condition.GOOD,
        )
        offered_item = Item.objects.create(
            owner=requester, title='Scooter', description='Red', category='Sports',
            condition=Item.Condition.FAIR,
        )
        trade_request = request_service.create_request(requester, requested_item.pk, offered_item.pk)
        trade = request_service.accept_request(owner, trade_request.pk)
        if complete:
            trade = trade_service.complete(owner, trade.pk)
        return trade


class ResolveRevieweeTests(RatingLedgerTestCase):

    def test_requester_rates_owner(self):
        self.assertEqual(rating_service.resolve_reviewee(self.trade, self.bob.pk), self.alice.pk)

    def test_owner_rates_requester(self):
        self.assertEqual(rating_service.resolve_reviewee(self.trade, self.alice.pk), self.bob.pk)

    def test_outsider_has_no_reviewee(self):
        with self.assertRaises(AuthorizationError):
            rating_service.resolve_reviewee(self.trade, self.carol.pk)


class SubmitRatingTests(RatingLedgerTestCase):

    def test_five_stars_credits_twenty_five_points(self):
        rating = rating_service.submit_rating(self.trade.pk, self.bob, 5, comment='Great swap')

        self.assertEqual(rating.reviewer, self.bob)
        self.assertEqual(rating.reviewee_id, self.alice.pk)
        self.assertEqual(rating.rating, 5)
        self.assertEqual(rating.comment, 'Great swap')

        self.alice.refresh_from_db()
        self.assertEqual(self.alice.loyalty_points, 25)

    def test_points_scale_with_stars(self):
        rating_service.submit_rating(self.trade.pk, self.alice, 3)
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.loyalty_points, 15)

    @override_settings(LOYALTY_POINTS_PER_STAR=10)
    def test_points_per_star_setting_is_used(self):
        rating_service.submit_rating(self.trade.pk, self.bob, 4)
        self.alice.refresh_from_db()
        self.assertEqual(self.alice.loyalty_points, 40)

    def test_reviewer_points_are_unchanged(self):
        rating_service.submit_rating(self.trade.pk, self.bob, 5)
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.loyalty_points, 0)

    def test_second_rating_is_rejected_and_points_unchanged(self):
        rating_service.submit_rating(self.trade.pk, self.bob, 5)

        with self.assertRaises(AlreadyRatedError):
            rating_service.submit_rating(self.trade.pk, self.bob, 4)

        self.alice.refresh_from_db()
        self.assertEqual(self.alice.loyalty_points, 25)
        self.assertEqual(Rating.objects.filter(trade=self.trade, reviewer=self.bob).count(), 1)

    def test_both_participants_can_rate_once(self):
        rating_service.submit_rating(self.trade.pk, self.bob, 5)
        rating_service.submit_rating(self.trade.pk, self.alice, 4)
        self.assertEqual(self.trade.ratings.count(), 2)

    def test_database_rejects_duplicate_rating(self):
        Rating.objects.create(trade=self.trade, reviewer=self.bob, reviewee=self.alice, rating=5)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Rating.objects.create(trade=self.trade, reviewer=self.bob, reviewee=self.alice, rating=1)

    def test_matching_reviewee_id_is_accepted(self):
        rating = rating_service.submit_rating(self.trade.pk, self.bob, 5, reviewee_id=self.alice.pk)
        self.assertEqual(rating.reviewee_id, self.alice.pk)

    def test_mismatched_reviewee_is_rejected(self):
        with self.assertRaises(RevieweeMismatchError):
            rating_service.submit_rating(self.trade.pk, self.bob, 5, reviewee_id=self.carol.pk)
        self.assertFalse(Rating.objects.exists())

    def test_reviewee_mismatch_is_a_validation_error(self):
        with self.assertRaises(ValidationError):
            rating_service.submit_rating(self.trade.pk, self.bob, 5, reviewee_id=self.carol.pk)

    def test_numeric_string_reviewee_id_is_accepted(self):
        rating = rating_service.submit_rating(self.trade.pk, self.bob, 5, reviewee_id=str(self.alice.pk))
        self.assertEqual(rating.reviewee_id, self.alice.pk)

    def test_non_numeric_reviewee_id_is_a_validation_error(self):
        for reviewee_id in ('abc', '', [1], True):
            with self.subTest(reviewee_id=reviewee_id):
                with self.assertRaises(ValidationError) as ctx:
                    rating_service.submit_rating(self.trade.pk, self.bob, 5, reviewee_id=reviewee_id)
                self.assertEqual(ctx.exception.code, 'invalid_reviewee')

        self.assertFalse(Rating.objects.exists())
        self.alice.refresh_from_db()
        self.assertEqual(self.alice.loyalty_points, 0)

    def test_rating_yourself_is_rejected(self):
        with self.assertRaises(SelfRatingError):
            rating_service.submit_rating(self.trade.pk, self.bob, 5, reviewee_id=self.bob.pk)

        self.bob.refresh_from_db()
        self.assertEqual(self.bob.loyalty_points, 0)

    def test_outsider_cannot_rate(self):
        with self.assertRaises(AuthorizationError):
            rating_service.submit_rating(self.trade.pk, self.carol, 5)

    def test_pending_trade_cannot_be_rated(self):
        pending = self._make_trade(self.carol, self.bob)
        with self.assertRaises(StateConflictError):
            rating_service.submit_rating(pending.pk, self.bob, 5)

    def test_cancelled_trade_cannot_be_rated(self):
        cancelled = self._make_trade(self.carol, self.bob)
        trade_service.cancel(self.bob, cancelled.pk)
        with self.assertRaises(StateConflictError):
            rating_service.submit_rating(cancelled.pk, self.bob, 5)

    def test_missing_trade_raises_not_found(self):
        with self.assertRaises(NotFoundError):
            rating_service.submit_rating(9999, self.bob, 5)

    def test_stars_must_be_between_one_and_five(self):
        for stars in (0, 6, -1):
            with self.subTest(stars=stars):
                with self.assertRaises(ValidationError):
                    rating_service.submit_rating(self.trade.pk, self.bob, stars)
        self.assertFalse(Rating.objects.exists())

    def test_stars_must_be_integers(self):
        for stars in (4.5, '5', True, None):
            with self.subTest(stars=stars):
                with self.assertRaises(ValidationError):
                    rating_service.submit_rating(self.trade.pk, self.bob, stars)

    def test_comment_length_limit(self):
        rating_service.submit_rating(self.trade.pk, self.bob, 5, comment='x' * 500)

        with self.assertRaises(ValidationError):
            rating_service.submit_rating(self.trade.pk, self.alice, 5, comment='x' * 501)

    def test_comment_is_optional(self):
        rating = rating_service.submit_rating(self.trade.pk, self.bob, 5, comment=None)
        self.assertEqual(rating.comment, '')


class BadgePromotionTests(RatingLedgerTestCase):

    def test_badge_follows_loyalty_points(self):
        self.alice.loyalty_points = 90
        self.alice.save()

        rating_service.submit_rating(self.trade.pk, self.bob, 2)
        self.alice.refresh_from_db()
        self.assertEqual(self.alice.loyalty_points, 100)
        self.assertEqual(self.alice.badge, Badge.SILVER)

    def test_badge_unchanged_below_threshold(self):
        rating_service.submit_rating(self.trade.pk, self.bob, 5)
        self.alice.refresh_from_db()
        self.assertEqual(self.alice.badge, Badge.BRONZE)

    def test_credit_hook_fires_after_commit(self):
        events = []

        def receiver(sender, user, points, badge_changed=False, **kwargs):
            events.append((user.pk, points, badge_changed))

        loyalty_points_credited.connect(receiver)
        try:
            self.alice.loyalty_points = 80
            self.alice.save()
            with self.captureOnCommitCallbacks(execute=True):
                rating_service.submit_rating(self.trade.pk, self.bob, 5)
        finally:
            loyalty_points_credited.disconnect(receiver)

        self.assertEqual(events, [(self.alice.pk, 25, True)])

    def test_rejected_rating_fires_no_credit_hook(self):
        events = []

        def receiver(sender, **kwargs):
            events.append(kwargs['user'].pk)

        rating_service.submit_rating(self.trade.pk, self.bob, 5)
        loyalty_points_credited.connect(receiver)
        try:
            with self.captureOnCommitCallbacks(execute=True):
                with self.assertRaises(AlreadyRatedError):
                    rating_service.submit_rating(self.trade.pk, self.bob, 5)
        finally:
            loyalty_points_credited.disconnect(receiver)

        self.assertEqual(events, [])


class UpdateAndDeleteRatingTests(RatingLedgerTestCase):

    def setUp(self):
        super().setUp()
        self.rating = rating_service.submit_rating(self.trade.pk, self.bob, 5, comment='Great')

    def test_reviewer_can_update_rating(self):
        updated = rating_service.update_rating(self.bob, self.rating.pk, stars=2, comment='Changed my mind')
        self.assertEqual(updated.rating, 2)
        self.assertEqual(updated.comment, 'Changed my mind')

    def test_update_does_not_adjust_points(self):
        rating_service.update_rating(self.bob, self.rating.pk, stars=1)
        self.alice.refresh_from_db()
        self.assertEqual(self.alice.loyalty_points, 25)

    def test_update_validates_stars(self):
        with self.assertRaises(ValidationError):
            rating_service.update_rating(self.bob, self.rating.pk, stars=9)

    def test_only_reviewer_can_update(self):
        for actor in (self.alice, self.carol):
            with self.subTest(actor=actor.username):
                with self.assertRaises(AuthorizationError):
                    rating_service.update_rating(actor, self.rating.pk, stars=1)

    def test_reviewer_can_delete_rating_and_points_are_kept(self):
        rating_service.delete_rating(self.bob, self.rating.pk)

        self.assertFalse(Rating.objects.filter(pk=self.rating.pk).exists())
        self.alice.refresh_from_db()
        self.assertEqual(self.alice.loyalty_points, 25)

    def test_resubmitting_after_delete_credits_points_once(self):
        for stars in (5, 5, 5):
            rating_service.delete_rating(self.bob, Rating.objects.get(trade=self.trade, reviewer=self.bob).pk)
            rating_service.submit_rating(self.trade.pk, self.bob, stars)

        self.alice.refresh_from_db()
        self.assertEqual(self.alice.loyalty_points, 25)
        self.assertEqual(self.alice.total_ratings, 1)
        self.assertEqual(LoyaltyCredit.objects.filter(trade=self.trade, reviewer=self.bob).count(), 1)
        self.assertTrue(Rating.objects.filter(trade=self.trade, reviewer=self.bob).exists())

    def test_resubmission_fires_no_credit_hook(self):
        events = []

        def receiver(sender, **kwargs):
            events.append(kwargs['user'].pk)

        rating_service.delete_rating(self.bob, self.rating.pk)
        loyalty_points_credited.connect(receiver)
        try:
            with self.captureOnCommitCallbacks(execute=True):
                rating = rating_service.submit_rating(self.trade.pk, self.bob, 4)
        finally:
            loyalty_points_credited.disconnect(receiver)

        self.assertEqual(rating.rating, 4)
        self.assertEqual(events, [])

    def test_other_participant_still_earns_points(self):
        rating_service.delete_rating(self.bob, self.rating.pk)
        rating_service.submit_rating(self.trade.pk, self.bob, 5)
        rating_service.submit_rating(self.trade.pk, self.alice, 4)

        self.bob.refresh_from_db()
        self.assertEqual(self.bob.loyalty_points, 20)
        self.assertEqual(LoyaltyCredit.objects.filter(trade=self.trade).count(), 2)

    def test_database_rejects_second_credit(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                LoyaltyCredit.objects.create(
                    trade=self.trade, reviewer=self.bob, reviewee=self.alice, points=25
                )

    def test_only_reviewer_can_delete(self):
        with self.assertRaises(AuthorizationError):
            rating_service.delete_rating(self.alice, self.rating.pk)
        self.assertTrue(Rating.objects.filter(pk=self.rating.pk).exists())

    def test_delete_missing_rating_raises_not_found(self):
        with self.assertRaises(NotFoundError):
            rating_service.delete_rating(self.bob, 9999)


class RatingStatsTests(RatingLedgerTestCase):

    def test_stats_for_user_without_ratings(self):
        stats = rating_service.get_stats(self.carol.pk)
        self.assertEqual(stats['average_rating'], Decimal('0.00'))
        self.assertEqual(stats['total_ratings'], 0)
        self.assertEqual(stats['rating_distribution'], {'1': 0, '2': 0, '3': 0, '4': 0, '5': 0})

    def test_stats_aggregate_ratings_received(self):
        rating_service.submit_rating(self.trade.pk, self.bob, 5)
        second = self._make_trade(self.alice, self.carol, complete=True)
        rating_service.submit_rating(second.pk, self.carol, 4)
        third = self._make_trade(self.alice, self.bob, complete=True)
        rating_service.submit_rating(third.pk, self.bob, 4)

        stats = rating_service.get_stats(self.alice.pk)
        self.assertEqual(stats['average_rating'], Decimal('4.33'))
        self.assertEqual(stats['total_ratings'], 3)
        self.assertEqual(stats['rating_distribution'], {'1': 0, '2': 0, '3': 0, '4': 2, '5': 1})

    def test_stats_ignore_ratings_given(self):
        rating_service.submit_rating(self.trade.pk, self.bob, 5)
        self.assertEqual(rating_service.get_stats(self.bob.pk)['total_ratings'], 0)

    def test_stats_for_missing_user(self):
        with self.assertRaises(NotFoundError):
            rating_service.get_stats(9999)
