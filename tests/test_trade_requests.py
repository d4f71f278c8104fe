"""
Tests for the trade request engine: create, accept, reject and cancel.

Covers:
- Creation checks and the order they are applied in
- Duplicate pending requests (service check and database constraint)
- Acceptance materializing a trade and auto-rejecting competing requests
- Role checks for reject and cancel
"""

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.test import TestCase

from marketplace.exceptions import (
    AuthorizationError,
    DuplicateRequestError,
    InvalidTransition,
    ItemUnavailableError,
    NotFoundError,
    NotOwnerError,
    SelfTradeError,
    StateConflictError,
)
from marketplace.models import Item, Trade, TradeRequest
from marketplace.services import items as item_service
from marketplace.services import trade_requests as request_service

User = get_user_model()


class TradeRequestTestCase(TestCase):

    def setUp(self):
        self.alice = User.objects.create_user(
            username='alice', email='alice@example.com', password='testpass123'
        )
        self.bob = User.objects.create_user(
            username='bob', email='bob@example.com', password='testpass123'
        )
        self.carol = User.objects.create_user(
            username='carol', email='carol@example.com', password='testpass123'
        )

        self.alice_item = self._create_item(self.alice, 'Camera')
        self.bob_item = self._create_item(self.bob, 'Tent')
        self.bob_other_item = self._create_item(self.bob, 'Sleeping bag')
        self.carol_item = self._create_item(self.carol, 'Kayak')

    def _create_item(self, owner, title):
        return Item.objects.create(
            owner=owner,
            title=title,
            description=f'{title} in working order',
            category='Outdoors',
            condition=Item.Condition.GOOD,
        )


class CreateTradeRequestTests(TradeRequestTestCase):

    def test_create_request_is_pending_and_items_stay_available(self):
        trade_request = request_service.create_request(self.bob, self.alice_item.pk, self.bob_item.pk)

        self.assertEqual(trade_request.status, TradeRequest.Status.PENDING)
        self.assertEqual(trade_request.requester, self.bob)
        self.assertEqual(trade_request.recipient_id, self.alice.pk)
        self.assertIsNone(trade_request.responded_at)

        for item in (self.alice_item, self.bob_item):
            item.refresh_from_db()
            self.assertEqual(item.status, Item.Status.AVAILABLE)

    def test_missing_item_raises_not_found(self):
        with self.assertRaises(NotFoundError):
            request_service.create_request(self.bob, 9999, self.bob_item.pk)
        with self.assertRaises(NotFoundError):
            request_service.create_request(self.bob, self.alice_item.pk, 9999)

    def test_requesting_own_item_is_self_trade(self):
        with self.assertRaises(SelfTradeError):
            request_service.create_request(self.bob, self.bob_other_item.pk, self.bob_item.pk)

    def test_self_trade_is_checked_before_ownership(self):
        """Asking for your own item with someone else's item still reports self trade."""
        with self.assertRaises(SelfTradeError):
            request_service.create_request(self.bob, self.bob_item.pk, self.alice_item.pk)

    def test_offering_someone_elses_item_is_not_owner(self):
        with self.assertRaises(NotOwnerError):
            request_service.create_request(self.bob, self.alice_item.pk, self.carol_item.pk)

    def test_unavailable_requested_item_is_rejected(self):
        item_service.set_status(self.alice_item.pk, Item.Status.RESERVED)
        with self.assertRaises(ItemUnavailableError):
            request_service.create_request(self.bob, self.alice_item.pk, self.bob_item.pk)

    def test_unavailable_offered_item_is_rejected(self):
        item_service.remove_item(self.bob, self.bob_item.pk)
        with self.assertRaises(ItemUnavailableError):
            request_service.create_request(self.bob, self.alice_item.pk, self.bob_item.pk)

    def test_duplicate_pending_request_is_rejected(self):
        request_service.create_request(self.bob, self.alice_item.pk, self.bob_item.pk)

        with self.assertRaises(DuplicateRequestError):
            request_service.create_request(self.bob, self.alice_item.pk, self.bob_item.pk)

        self.assertEqual(TradeRequest.objects.count(), 1)

    def test_duplicate_error_is_a_state_conflict(self):
        request_service.create_request(self.bob, self.alice_item.pk, self.bob_item.pk)
        with self.assertRaises(StateConflictError):
            request_service.create_request(self.bob, self.alice_item.pk, self.bob_item.pk)

    def test_same_pair_can_be_requested_again_after_cancel(self):
        first = request_service.create_request(self.bob, self.alice_item.pk, self.bob_item.pk)
        request_service.cancel_request(self.bob, first.pk)

        second = request_service.create_request(self.bob, self.alice_item.pk, self.bob_item.pk)
        self.assertNotEqual(first.pk, second.pk)

    def test_different_offer_for_same_item_is_allowed(self):
        request_service.create_request(self.bob, self.alice_item.pk, self.bob_item.pk)
        request_service.create_request(self.bob, self.alice_item.pk, self.bob_other_item.pk)
        self.assertEqual(TradeRequest.objects.filter(status=TradeRequest.Status.PENDING).count(), 2)

    def test_database_rejects_duplicate_pending_pair(self):
        """The partial unique constraint backs the service-level check."""
        TradeRequest.objects.create(
            requester=self.bob, requested_item=self.alice_item, offered_item=self.bob_item
        )
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                TradeRequest.objects.create(
                    requester=self.bob, requested_item=self.alice_item, offered_item=self.bob_item
                )


class AcceptTradeRequestTests(TradeRequestTestCase):

    def test_accept_materializes_trade_and_reserves_items(self):
        trade_request = request_service.create_request(self.bob, self.alice_item.pk, self.bob_item.pk)

        trade = request_service.accept_request(self.alice, trade_request.pk, location='Library')

        trade_request.refresh_from_db()
        self.assertEqual(trade_request.status, TradeRequest.Status.ACCEPTED)
        self.assertIsNotNone(trade_request.responded_at)

        self.assertEqual(trade.status, Trade.Status.PENDING)
        self.assertEqual(trade.trade_request, trade_request)
        self.assertEqual(trade.requester, self.bob)
        self.assertEqual(trade.owner, self.alice)
        self.assertEqual(trade.requested_item, self.alice_item)
        self.assertEqual(trade.offered_item, self.bob_item)
        self.assertEqual(trade.location, 'Library')

        for item in (self.alice_item, self.bob_item):
            item.refresh_from_db()
            self.assertEqual(item.status, Item.Status.RESERVED)

    def test_exactly_one_trade_per_accepted_request(self):
        trade_request = request_service.create_request(self.bob, self.alice_item.pk, self.bob_item.pk)
        request_service.accept_request(self.alice, trade_request.pk)

        with self.assertRaises(InvalidTransition):
            request_service.accept_request(self.alice, trade_request.pk)

        self.assertEqual(Trade.objects.filter(trade_request=trade_request).count(), 1)

    def test_only_recipient_can_accept(self):
        trade_request = request_service.create_request(self.bob, self.alice_item.pk, self.bob_item.pk)

        for actor in (self.bob, self.carol):
            with self.subTest(actor=actor.username):
                with self.assertRaises(AuthorizationError):
                    request_service.accept_request(actor, trade_request.pk)

        self.assertFalse(Trade.objects.exists())

    def test_accept_missing_request_raises_not_found(self):
        with self.assertRaises(NotFoundError):
            request_service.accept_request(self.alice, 9999)

    def test_competing_requests_are_auto_rejected(self):
        """
        Two users ask for the same item. Accepting one rejects the other, as
        well as other pending requests that offer either traded item.
        """
        bob_request = request_service.create_request(self.bob, self.alice_item.pk, self.bob_item.pk)
        carol_request = request_service.create_request(self.carol, self.alice_item.pk, self.carol_item.pk)
        # Bob also offered the same tent to Carol
        bob_to_carol = request_service.create_request(self.bob, self.carol_item.pk, self.bob_item.pk)
        # Unrelated request stays pending
        unrelated = request_service.create_request(self.carol, self.bob_other_item.pk, self.carol_item.pk)

        request_service.accept_request(self.alice, bob_request.pk)

        carol_request.refresh_from_db()
        bob_to_carol.refresh_from_db()
        unrelated.refresh_from_db()
        self.assertEqual(carol_request.status, TradeRequest.Status.REJECTED)
        self.assertEqual(bob_to_carol.status, TradeRequest.Status.REJECTED)
        self.assertEqual(unrelated.status, TradeRequest.Status.PENDING)

        with self.assertRaises(InvalidTransition):
            request_service.accept_request(self.alice, carol_request.pk)

        self.assertEqual(Trade.objects.count(), 1)

    def test_accept_rechecks_item_availability(self):
        trade_request = request_service.create_request(self.bob, self.alice_item.pk, self.bob_item.pk)
        # Item leaves the market without going through the request engine
        item_service.set_status(self.bob_item.pk, Item.Status.SWAPPED)

        with self.assertRaises(ItemUnavailableError):
            request_service.accept_request(self.alice, trade_request.pk)

        trade_request.refresh_from_db()
        self.assertEqual(trade_request.status, TradeRequest.Status.PENDING)
        self.assertFalse(Trade.objects.exists())


class RejectAndCancelTradeRequestTests(TradeRequestTestCase):

    def setUp(self):
        super().setUp()
        self.trade_request = request_service.create_request(self.bob, self.alice_item.pk, self.bob_item.pk)

    def test_recipient_can_reject(self):
        result = request_service.reject_request(self.alice, self.trade_request.pk)
        self.assertEqual(result.status, TradeRequest.Status.REJECTED)
        self.assertIsNotNone(result.responded_at)

    def test_requester_cannot_reject(self):
        with self.assertRaises(AuthorizationError):
            request_service.reject_request(self.bob, self.trade_request.pk)

    def test_requester_can_cancel(self):
        result = request_service.cancel_request(self.bob, self.trade_request.pk)
        self.assertEqual(result.status, TradeRequest.Status.CANCELLED)

    def test_recipient_cannot_cancel(self):
        with self.assertRaises(AuthorizationError):
            request_service.cancel_request(self.alice, self.trade_request.pk)

    def test_reject_and_cancel_leave_items_available(self):
        request_service.reject_request(self.alice, self.trade_request.pk)
        for item in (self.alice_item, self.bob_item):
            item.refresh_from_db()
            self.assertEqual(item.status, Item.Status.AVAILABLE)

    def test_terminal_request_cannot_change(self):
        request_service.cancel_request(self.bob, self.trade_request.pk)

        with self.assertRaises(InvalidTransition):
            request_service.reject_request(self.alice, self.trade_request.pk)
        with self.assertRaises(InvalidTransition):
            request_service.cancel_request(self.bob, self.trade_request.pk)
        with self.assertRaises(InvalidTransition):
            request_service.accept_request(self.alice, self.trade_request.pk)


class TradeRequestListingTests(TradeRequestTestCase):

    def test_received_and_sent_requests(self):
        first = request_service.create_request(self.bob, self.alice_item.pk, self.bob_item.pk)
        second = request_service.create_request(self.carol, self.alice_item.pk, self.carol_item.pk)
        request_service.reject_request(self.alice, second.pk)

        self.assertEqual(set(request_service.received_requests(self.alice)), {first, second})
        self.assertEqual(
            list(request_service.received_requests(self.alice, status=TradeRequest.Status.PENDING)),
            [first]
        )
        self.assertEqual(list(request_service.sent_requests(self.bob)), [first])
        self.assertEqual(list(request_service.received_requests(self.bob)), [])
