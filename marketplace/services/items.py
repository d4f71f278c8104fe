"""
Item store: listing, editing, removal and status transitions.

Every status change goes through ``apply_status`` so the legal-transition
table on ``Item`` is the single source of truth.
"""

import logging

from django.db import transaction
from django.utils import timezone

from ..exceptions import (
    InvalidTransition,
    ItemUnavailableError,
    NotFoundError,
    NotOwnerError,
    ValidationError,
)
from ..models import Item, ItemImage, TradeRequest
from .distance import validate_coordinates

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('title', 'description', 'category', 'condition', 'latitude', 'longitude')


def get_item(item_id):
    try:
        return Item.objects.select_related('owner').get(pk=item_id)
    except Item.DoesNotExist:
        raise NotFoundError(f'Item with ID {item_id} does not exist.')


def lock_items(item_ids):
    """
    Lock the given item rows for the enclosing transaction.

    Rows are locked in ascending id order so that two transactions touching
    the same pair of items can never deadlock.

    Returns:
        dict: item id -> locked Item

    Raises:
        NotFoundError: If any id does not exist
    """
    ordered = sorted(set(item_ids))
    items = {
        item.pk: item
        for item in Item.objects.select_for_update().filter(pk__in=ordered).order_by('pk')
    }
    for item_id in ordered:
        if item_id not in items:
            raise NotFoundError(f'Item with ID {item_id} does not exist.')
    return items


def apply_status(item, new_status):
    """
    Move an already-locked item to ``new_status``.

    Raises:
        InvalidTransition: If the transition is not in the legal table
    """
    is_valid, error_message = item.can_transition_to(new_status)
    if not is_valid:
        raise InvalidTransition(error_message)

    old_status = item.status
    item.status = new_status
    item.save(update_fields=['status', 'updated_at'])
    logger.info(f"Item status changed. Item ID: {item.pk}, Old Status: {old_status}, New Status: {new_status}")
    return item


def set_status(item_id, new_status):
    with transaction.atomic():
        item = lock_items([item_id])[item_id]
        return apply_status(item, new_status)


def post_item(owner, title, description, category, condition,
              latitude=None, longitude=None, image_urls=None):
    """
    List a new AVAILABLE item for ``owner``.

    Coordinates are optional but must be supplied together and in range.
    ``image_urls`` are references produced by the image storage service.
    """
    if latitude is not None or longitude is not None:
        latitude, longitude = validate_coordinates(latitude, longitude)

    with transaction.atomic():
        item = Item(
            owner=owner,
            title=title,
            description=description,
            category=category,
            condition=condition,
            latitude=latitude,
            longitude=longitude,
        )
        item.save()

        for order, url in enumerate(image_urls or []):
            image = ItemImage(item=item, url=url, order=order)
            image.full_clean()
            image.save()

    logger.info(f"Item posted. Item ID: {item.pk}, Owner ID: {owner.pk}, Category: {item.category}")
    return item


def update_item(actor, item_id, **fields):
    """
    Edit an item's descriptive fields.

    Only the owner may edit, and only while the item is AVAILABLE. Status is
    not editable here.

    Raises:
        NotFoundError, NotOwnerError, ItemUnavailableError
    """
    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(
            f"Fields cannot be edited: {', '.join(sorted(unknown))}.",
            code='not_editable'
        )

    with transaction.atomic():
        item = lock_items([item_id])[item_id]

        if item.owner_id != actor.pk:
            raise NotOwnerError('You can only edit your own items.')

        if not item.is_available():
            raise ItemUnavailableError(f'Cannot edit an item that is {item.status.lower()}.')

        latitude = fields.get('latitude', item.latitude)
        longitude = fields.get('longitude', item.longitude)
        if ('latitude' in fields or 'longitude' in fields) and (latitude is not None or longitude is not None):
            fields['latitude'], fields['longitude'] = validate_coordinates(latitude, longitude)

        for name, value in fields.items():
            setattr(item, name, value)
        item.save()

    logger.info(f"Item updated. Item ID: {item.pk}, Fields: {sorted(fields)}")
    return item


def remove_item(actor, item_id):
    """
    Withdraw an AVAILABLE item from the marketplace.

    Pending requests asking for the item are rejected; pending requests
    offering it are cancelled.

    Raises:
        NotFoundError, NotOwnerError, InvalidTransition
    """
    with transaction.atomic():
        item = lock_items([item_id])[item_id]

        if item.owner_id != actor.pk:
            raise NotOwnerError('You can only remove your own items.')

        apply_status(item, Item.Status.REMOVED)

        now = timezone.now()
        rejected = TradeRequest.objects.filter(
            requested_item=item,
            status=TradeRequest.Status.PENDING
        ).update(status=TradeRequest.Status.REJECTED, responded_at=now)
        cancelled = TradeRequest.objects.filter(
            offered_item=item,
            status=TradeRequest.Status.PENDING
        ).update(status=TradeRequest.Status.CANCELLED, responded_at=now)

    logger.info(
        f"Item removed. Item ID: {item.pk}, Owner ID: {actor.pk}, "
        f"Requests rejected: {rejected}, Requests cancelled: {cancelled}"
    )
    return item
