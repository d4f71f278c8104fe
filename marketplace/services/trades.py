"""
Trade lifecycle: materializing accepted requests, completion and cancellation.

While a trade is PENDING both of its items are RESERVED. Completion swaps
them; cancellation releases them. Item changes always happen in the same
transaction as the trade status change.
"""

import logging

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from ..exceptions import (
    AlreadyCompletedError,
    AuthorizationError,
    InvalidTransition,
    NotFoundError,
)
from ..models import Item, Trade
from ..signals import trade_cancelled, trade_completed
from .items import apply_status, lock_items

logger = logging.getLogger(__name__)


def materialize(trade_request, items=None, location=''):
    """
    Create the PENDING trade for an ACCEPTED request and reserve both items.

    Must run inside the accepting transaction. ``items`` may carry the item
    rows the caller has already locked.
    """
    if items is None:
        items = lock_items([trade_request.requested_item_id, trade_request.offered_item_id])

    requested_item = items[trade_request.requested_item_id]
    offered_item = items[trade_request.offered_item_id]

    trade = Trade.objects.create(
        trade_request=trade_request,
        requested_item=requested_item,
        offered_item=offered_item,
        requester_id=trade_request.requester_id,
        owner_id=requested_item.owner_id,
        location=location,
    )

    for item_id in sorted(items):
        apply_status(items[item_id], Item.Status.RESERVED)

    logger.info(
        f"Trade created. Trade ID: {trade.pk}, Request ID: {trade_request.pk}, "
        f"Requester ID: {trade.requester_id}, Owner ID: {trade.owner_id}"
    )
    return trade


def _lock_trade_for_participant(actor, trade_id):
    """
    Lock a trade and both of its items for the enclosing transaction.

    Item rows are locked first, in id order, then the trade row.

    Returns:
        tuple: (trade, dict of item id -> locked Item)
    """
    try:
        item_ids = Trade.objects.values_list(
            'requested_item_id', 'offered_item_id'
        ).get(pk=trade_id)
    except Trade.DoesNotExist:
        raise NotFoundError(f'Trade with ID {trade_id} does not exist.')

    items = lock_items(item_ids)
    trade = Trade.objects.select_for_update().get(pk=trade_id)

    if not trade.is_participant(actor.pk):
        raise AuthorizationError('Only participants of this trade can change it.')

    return trade, items


def _check_transition(trade, new_status):
    is_valid, error_message = trade.can_transition_to(new_status)
    if is_valid:
        return
    if trade.status == Trade.Status.COMPLETED:
        raise AlreadyCompletedError(error_message)
    raise InvalidTransition(error_message)


def complete(actor, trade_id):
    """
    Mark a PENDING trade as COMPLETED and swap both items.

    A second call on the same trade raises AlreadyCompletedError and changes
    nothing.

    Raises:
        NotFoundError, AuthorizationError, AlreadyCompletedError, InvalidTransition
    """
    with transaction.atomic():
        trade, items = _lock_trade_for_participant(actor, trade_id)
        _check_transition(trade, Trade.Status.COMPLETED)

        for item_id in sorted(items):
            apply_status(items[item_id], Item.Status.SWAPPED)

        trade.status = Trade.Status.COMPLETED
        trade.completed_at = timezone.now()
        trade.save(update_fields=['status', 'completed_at', 'updated_at'])

        transaction.on_commit(lambda: trade_completed.send(sender=Trade, trade=trade))

    logger.info(f"Trade completed. Trade ID: {trade.pk}, Completed by: {actor.pk}")
    return trade


def cancel(actor, trade_id):
    """
    Cancel a PENDING trade and return both items to AVAILABLE.

    Raises:
        NotFoundError, AuthorizationError, AlreadyCompletedError, InvalidTransition
    """
    with transaction.atomic():
        trade, items = _lock_trade_for_participant(actor, trade_id)
        _check_transition(trade, Trade.Status.CANCELLED)

        for item_id in sorted(items):
            apply_status(items[item_id], Item.Status.AVAILABLE)

        trade.status = Trade.Status.CANCELLED
        trade.save(update_fields=['status', 'updated_at'])

        transaction.on_commit(
            lambda: trade_cancelled.send(sender=Trade, trade=trade, actor_id=actor.pk)
        )

    logger.info(f"Trade cancelled. Trade ID: {trade.pk}, Cancelled by: {actor.pk}")
    return trade


def get_trade_for_participant(actor, trade_id):
    try:
        trade = Trade.objects.select_related(
            'requester', 'owner', 'requested_item', 'offered_item'
        ).get(pk=trade_id)
    except Trade.DoesNotExist:
        raise NotFoundError(f'Trade with ID {trade_id} does not exist.')

    if not trade.is_participant(actor.pk):
        raise AuthorizationError('You can only view trades you take part in.')

    return trade


def trades_for_user(user, status=None):
    """Trades where ``user`` is either participant, newest first."""
    queryset = Trade.objects.filter(
        Q(requester=user) | Q(owner=user)
    ).select_related('requester', 'owner', 'requested_item', 'offered_item')

    if status:
        queryset = queryset.filter(status=status)

    return queryset.order_by('-created_at')
