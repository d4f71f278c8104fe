"""
Trade request negotiation: create, accept, reject and cancel.

Creating a request leaves both items AVAILABLE. Accepting one reserves both
items through the trade lifecycle and rejects every other pending request
that references either item.
"""

import logging

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from ..exceptions import (
    AuthorizationError,
    DuplicateRequestError,
    InvalidTransition,
    ItemUnavailableError,
    NotFoundError,
    NotOwnerError,
    SelfTradeError,
)
from ..models import TradeRequest
from .items import get_item, lock_items
from .trades import materialize

logger = logging.getLogger(__name__)


def get_request(request_id, lock=False):
    queryset = TradeRequest.objects.select_related('requested_item', 'offered_item')
    if lock:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=request_id)
    except TradeRequest.DoesNotExist:
        raise NotFoundError(f'Trade request with ID {request_id} does not exist.')


def create_request(requester, requested_item_id, offered_item_id):
    """
    Offer ``offered_item_id`` (owned by the requester) for ``requested_item_id``.

    Checks, in order:
    1. Both items exist
    2. The requested item is not the requester's own
    3. The requester owns the offered item
    4. Both items are AVAILABLE
    5. No PENDING request exists for the same pair

    Raises:
        NotFoundError, SelfTradeError, NotOwnerError, ItemUnavailableError,
        DuplicateRequestError
    """
    requested_item = get_item(requested_item_id)
    offered_item = get_item(offered_item_id)

    if requested_item.owner_id == requester.pk:
        raise SelfTradeError('You cannot request your own item.')

    if offered_item.owner_id != requester.pk:
        raise NotOwnerError('You can only offer items you own.')

    try:
        with transaction.atomic():
            items = lock_items([requested_item.pk, offered_item.pk])

            for item in (items[requested_item.pk], items[offered_item.pk]):
                if not item.is_available():
                    raise ItemUnavailableError(
                        f'Item "{item.title}" is {item.status.lower()} and cannot be traded.'
                    )

            duplicate = TradeRequest.objects.filter(
                requester=requester,
                requested_item=requested_item,
                offered_item=offered_item,
                status=TradeRequest.Status.PENDING
            ).exists()
            if duplicate:
                raise DuplicateRequestError()

            trade_request = TradeRequest.objects.create(
                requester=requester,
                requested_item=requested_item,
                offered_item=offered_item,
            )
    except IntegrityError:
        # A concurrent request for the same pair won the unique constraint
        logger.warning(
            f"Duplicate trade request rejected by constraint. Requester ID: {requester.pk}, "
            f"Requested item: {requested_item.pk}, Offered item: {offered_item.pk}"
        )
        raise DuplicateRequestError()

    logger.info(
        f"Trade request created. Request ID: {trade_request.pk}, Requester ID: {requester.pk}, "
        f"Requested item: {requested_item.pk}, Offered item: {offered_item.pk}"
    )
    return trade_request


def _respond(trade_request, new_status):
    is_valid, error_message = trade_request.can_transition_to(new_status)
    if not is_valid:
        raise InvalidTransition(error_message)

    trade_request.status = new_status
    trade_request.responded_at = timezone.now()
    trade_request.save(update_fields=['status', 'responded_at'])
    return trade_request


def accept_request(recipient, request_id, location=''):
    """
    Accept a PENDING request and materialize its trade.

    Item rows are locked in id order before the request row, then both items
    are re-checked for availability. Every other PENDING request referencing
    either item is rejected in the same transaction.

    Returns:
        Trade: The new PENDING trade

    Raises:
        NotFoundError, AuthorizationError, InvalidTransition, ItemUnavailableError
    """
    trade_request = get_request(request_id)

    if trade_request.requested_item.owner_id != recipient.pk:
        raise AuthorizationError('Only the owner of the requested item can accept this request.')

    with transaction.atomic():
        item_ids = [trade_request.requested_item_id, trade_request.offered_item_id]
        items = lock_items(item_ids)
        trade_request = get_request(request_id, lock=True)

        is_valid, error_message = trade_request.can_transition_to(TradeRequest.Status.ACCEPTED)
        if not is_valid:
            raise InvalidTransition(error_message)

        for item_id in item_ids:
            item = items[item_id]
            if not item.is_available():
                raise ItemUnavailableError(
                    f'Item "{item.title}" is {item.status.lower()} and cannot be traded.'
                )

        _respond(trade_request, TradeRequest.Status.ACCEPTED)
        trade = materialize(trade_request, items=items, location=location)

        auto_rejected = TradeRequest.objects.filter(
            Q(requested_item_id__in=item_ids) | Q(offered_item_id__in=item_ids),
            status=TradeRequest.Status.PENDING
        ).exclude(pk=trade_request.pk).update(
            status=TradeRequest.Status.REJECTED,
            responded_at=timezone.now()
        )

    logger.info(
        f"Trade request accepted. Request ID: {trade_request.pk}, Trade ID: {trade.pk}, "
        f"Recipient ID: {recipient.pk}, Competing requests rejected: {auto_rejected}"
    )
    return trade


def reject_request(recipient, request_id):
    """
    Raises:
        NotFoundError, AuthorizationError, InvalidTransition
    """
    with transaction.atomic():
        trade_request = get_request(request_id, lock=True)

        if trade_request.requested_item.owner_id != recipient.pk:
            raise AuthorizationError('Only the owner of the requested item can reject this request.')

        _respond(trade_request, TradeRequest.Status.REJECTED)

    logger.info(f"Trade request rejected. Request ID: {trade_request.pk}, Recipient ID: {recipient.pk}")
    return trade_request


def cancel_request(requester, request_id):
    """
    Raises:
        NotFoundError, AuthorizationError, InvalidTransition
    """
    with transaction.atomic():
        trade_request = get_request(request_id, lock=True)

        if trade_request.requester_id != requester.pk:
            raise AuthorizationError('Only the requester can cancel this request.')

        _respond(trade_request, TradeRequest.Status.CANCELLED)

    logger.info(f"Trade request cancelled. Request ID: {trade_request.pk}, Requester ID: {requester.pk}")
    return trade_request


def received_requests(user, status=None):
    """Requests for items ``user`` owns, newest first."""
    queryset = TradeRequest.objects.filter(
        requested_item__owner=user
    ).select_related('requester', 'requested_item', 'offered_item')

    if status:
        queryset = queryset.filter(status=status)

    return queryset.order_by('-requested_at')


def sent_requests(user, status=None):
    """Requests ``user`` has made, newest first."""
    queryset = TradeRequest.objects.filter(
        requester=user
    ).select_related('requested_item__owner', 'offered_item')

    if status:
        queryset = queryset.filter(status=status)

    return queryset.order_by('-requested_at')
