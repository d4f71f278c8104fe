"""
Data model for the Item Swap Marketplace.

Entities are related by foreign keys only: a Trade points at its
TradeRequest, both point at the two Items and the participating Users.
"""

from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MaxLengthValidator, MaxValueValidator, MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from .reputation import BADGE_DISPLAY, Badge
from .validators import validate_latitude, validate_longitude


class User(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.

    Identity and credentials are owned by the external session provider;
    this model keeps the profile and the reputation fields:
    - loyalty_points: Only ever increased by the rating ledger
    - badge: Tier derived from loyalty_points
    - average_rating / total_ratings: Aggregates over ratings received
    """

    email = models.EmailField(
        _('email address'),
        unique=True,
        blank=False,
        null=False,
        error_messages={
            'unique': _('A user with that email already exists.'),
        },
        help_text=_('Required. Enter a valid email address.')
    )

    bio = models.TextField(
        _('bio'),
        blank=True,
        default='',
        help_text=_('Optional short introduction.')
    )

    image = models.URLField(
        _('image URL'),
        max_length=500,
        blank=True,
        default='',
        help_text=_('Avatar URL supplied by the image storage service.')
    )

    latitude = models.FloatField(
        _('latitude'),
        null=True,
        blank=True,
        validators=[validate_latitude],
    )

    longitude = models.FloatField(
        _('longitude'),
        null=True,
        blank=True,
        validators=[validate_longitude],
    )

    loyalty_points = models.PositiveIntegerField(
        _('loyalty points'),
        default=0,
        help_text=_('Points accrued from ratings received.')
    )

    badge = models.CharField(
        _('badge'),
        max_length=10,
        choices=Badge.choices,
        default=Badge.BRONZE,
        help_text=_('Reputation tier derived from loyalty points.')
    )

    average_rating = models.DecimalField(
        _('average rating'),
        max_digits=3,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[
            MinValueValidator(Decimal('0.00'), message=_('Rating cannot be negative.')),
            MaxValueValidator(Decimal('5.00'), message=_('Rating cannot exceed 5.00.'))
        ],
        help_text=_('Average of the ratings received.')
    )

    total_ratings = models.PositiveIntegerField(
        _('total ratings'),
        default=0,
        help_text=_('Number of ratings received.')
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['email'], name='user_email_idx'),
            models.Index(fields=['badge'], name='user_badge_idx'),
        ]

    def __str__(self):
        return self.email or self.username

    @property
    def badge_display(self):
        """Label and colour for the user's badge."""
        return BADGE_DISPLAY[Badge(self.badge)]

    def clean(self):
        super().clean()

        if self.email:
            self.email = self.email.lower()

        if not self.email:
            raise ValidationError({
                'email': _('Email address is required.')
            })

    def save(self, *args, **kwargs):
        # Normalize email to lowercase for case-insensitive uniqueness
        if self.email:
            self.email = self.email.lower()
        super().save(*args, **kwargs)


class Item(models.Model):
    """
    A listed object available for trade.

    Status moves only along ALLOWED_TRANSITIONS; SWAPPED and REMOVED are
    terminal.
    """

    class Condition(models.TextChoices):
        NEW = 'NEW', _('New')
        GOOD = 'GOOD', _('Good')
        FAIR = 'FAIR', _('Fair')
        POOR = 'POOR', _('Poor')

    class Status(models.TextChoices):
        AVAILABLE = 'AVAILABLE', _('Available')
        RESERVED = 'RESERVED', _('Reserved')
        SWAPPED = 'SWAPPED', _('Swapped')
        REMOVED = 'REMOVED', _('Removed')

    ALLOWED_TRANSITIONS = {
        Status.AVAILABLE: {Status.RESERVED, Status.SWAPPED, Status.REMOVED},
        Status.RESERVED: {Status.SWAPPED, Status.AVAILABLE},
        Status.SWAPPED: set(),
        Status.REMOVED: set(),
    }

    owner = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='items',
        help_text=_('User who listed this item')
    )

    title = models.CharField(_('title'), max_length=200)

    description = models.TextField(_('description'))

    category = models.CharField(_('category'), max_length=100)

    condition = models.CharField(
        _('condition'),
        max_length=10,
        choices=Condition.choices,
    )

    status = models.CharField(
        _('status'),
        max_length=10,
        choices=Status.choices,
        default=Status.AVAILABLE,
    )

    latitude = models.FloatField(
        _('latitude'),
        null=True,
        blank=True,
        validators=[validate_latitude],
    )

    longitude = models.FloatField(
        _('longitude'),
        null=True,
        blank=True,
        validators=[validate_longitude],
    )

    posted_at = models.DateTimeField(_('posted at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('item')
        verbose_name_plural = _('items')
        ordering = ['-posted_at']
        indexes = [
            models.Index(fields=['owner'], name='item_owner_idx'),
            models.Index(fields=['status'], name='item_status_idx'),
            models.Index(fields=['category'], name='item_category_idx'),
        ]

    def __str__(self):
        return self.title

    def clean(self):
        """
        Validate model fields.

        Ensures:
        - Title, description and category are not blank
        - Latitude and longitude are supplied together

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        for field in ('title', 'description', 'category'):
            value = getattr(self, field)
            if not value or not value.strip():
                raise ValidationError({
                    field: _('This field cannot be blank.')
                })

        if (self.latitude is None) != (self.longitude is None):
            raise ValidationError({
                'latitude': _('Latitude and longitude must be provided together.')
            })

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def is_available(self):
        return self.status == self.Status.AVAILABLE

    def has_coordinates(self):
        return self.latitude is not None and self.longitude is not None

    def can_transition_to(self, new_status):
        """
        Check whether the item may move to ``new_status``.

        Returns:
            tuple: (is_valid: bool, error_message: str or None)
        """
        if new_status not in self.Status.values:
            return False, f'Unknown item status: {new_status}.'

        if new_status in self.ALLOWED_TRANSITIONS[self.Status(self.status)]:
            return True, None

        return False, f'Cannot change item status from {self.status} to {new_status}.'


class ItemImage(models.Model):
    """Image reference attached to an item by the image storage service."""

    item = models.ForeignKey(
        Item,
        on_delete=models.CASCADE,
        related_name='images',
    )

    url = models.URLField(_('url'), max_length=500)

    order = models.PositiveIntegerField(_('order'), default=0)

    uploaded_at = models.DateTimeField(_('uploaded at'), auto_now_add=True)

    class Meta:
        verbose_name = _('item image')
        verbose_name_plural = _('item images')
        ordering = ['order', 'uploaded_at']

    def __str__(self):
        return f"Image for {self.item.title}"


class TradeRequest(models.Model):
    """
    A proposal: "I offer my item X for your item Y".

    The recipient is the owner of requested_item. Only PENDING requests can
    change status; ACCEPTED, REJECTED and CANCELLED are terminal.
    """

    class Status(models.TextChoices):
        PENDING = 'PENDING', _('Pending')
        ACCEPTED = 'ACCEPTED', _('Accepted')
        REJECTED = 'REJECTED', _('Rejected')
        CANCELLED = 'CANCELLED', _('Cancelled')

    requested_item = models.ForeignKey(
        Item,
        on_delete=models.CASCADE,
        related_name='trade_requests_for',
        help_text=_('Item being asked for (owned by the recipient)')
    )

    offered_item = models.ForeignKey(
        Item,
        on_delete=models.CASCADE,
        related_name='trade_requests_offering',
        help_text=_('Item offered in exchange (owned by the requester)')
    )

    requester = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='trade_requests_sent',
    )

    status = models.CharField(
        _('status'),
        max_length=10,
        choices=Status.choices,
        default=Status.PENDING,
    )

    requested_at = models.DateTimeField(_('requested at'), auto_now_add=True)

    responded_at = models.DateTimeField(_('responded at'), null=True, blank=True)

    class Meta:
        verbose_name = _('trade request')
        verbose_name_plural = _('trade requests')
        ordering = ['-requested_at']
        indexes = [
            models.Index(fields=['requester'], name='traderequest_requester_idx'),
            models.Index(fields=['status'], name='traderequest_status_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['requester', 'requested_item', 'offered_item'],
                name='unique_pending_trade_request',
                condition=models.Q(status='PENDING')
            )
        ]

    def __str__(self):
        return f"Request #{self.pk}: {self.offered_item_id} for {self.requested_item_id} ({self.status})"

    @property
    def recipient_id(self):
        return self.requested_item.owner_id

    def can_transition_to(self, new_status):
        """
        Returns:
            tuple: (is_valid: bool, error_message: str or None)
        """
        if self.status != self.Status.PENDING:
            return False, f'This trade request is already {self.status.lower()}.'

        if new_status not in (self.Status.ACCEPTED, self.Status.REJECTED, self.Status.CANCELLED):
            return False, f'Invalid status transition from {self.status} to {new_status}.'

        return True, None


class Trade(models.Model):
    """
    The materialized exchange created from an accepted request.

    Exactly one Trade exists per accepted request (one-to-one). While PENDING
    both items are RESERVED.
    """

    class Status(models.TextChoices):
        PENDING = 'PENDING', _('Pending')
        COMPLETED = 'COMPLETED', _('Completed')
        FAILED = 'FAILED', _('Failed')
        CANCELLED = 'CANCELLED', _('Cancelled')

    trade_request = models.OneToOneField(
        TradeRequest,
        on_delete=models.CASCADE,
        related_name='trade',
    )

    requested_item = models.ForeignKey(
        Item,
        on_delete=models.CASCADE,
        related_name='trades_as_requested',
    )

    offered_item = models.ForeignKey(
        Item,
        on_delete=models.CASCADE,
        related_name='trades_as_offered',
    )

    requester = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='trades_as_requester',
    )

    owner = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='trades_as_owner',
    )

    location = models.CharField(
        _('meeting location'),
        max_length=255,
        blank=True,
        default='',
    )

    status = models.CharField(
        _('status'),
        max_length=10,
        choices=Status.choices,
        default=Status.PENDING,
    )

    completed_at = models.DateTimeField(_('completed at'), null=True, blank=True)

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('trade')
        verbose_name_plural = _('trades')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['requester'], name='trade_requester_idx'),
            models.Index(fields=['owner'], name='trade_owner_idx'),
            models.Index(fields=['status'], name='trade_status_idx'),
        ]

    def __str__(self):
        return f"Trade #{self.pk} ({self.status})"

    def is_participant(self, user_id):
        return user_id in (self.requester_id, self.owner_id)

    def can_transition_to(self, new_status):
        """
        Valid transitions:
        - PENDING -> COMPLETED
        - PENDING -> CANCELLED
        - PENDING -> FAILED
        - COMPLETED, CANCELLED, FAILED -> (terminal)

        Returns:
            tuple: (is_valid: bool, error_message: str or None)
        """
        if self.status == self.Status.COMPLETED:
            return False, 'This trade has already been completed.'

        if self.status != self.Status.PENDING:
            return False, f'Cannot modify a {self.status.lower()} trade.'

        if new_status not in (self.Status.COMPLETED, self.Status.CANCELLED, self.Status.FAILED):
            return False, f'Invalid status transition from {self.status} to {new_status}.'

        return True, None


class Rating(models.Model):
    """
    A 1-5 star review left by one participant of a completed trade.

    At most one rating per (trade, reviewer); the database constraint makes
    concurrent duplicate submissions fail deterministically.
    """

    trade = models.ForeignKey(
        Trade,
        on_delete=models.CASCADE,
        related_name='ratings',
    )

    reviewer = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='ratings_given',
    )

    reviewee = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='ratings_received',
    )

    rating = models.PositiveSmallIntegerField(
        _('rating'),
        validators=[
            MinValueValidator(1, message=_('Rating must be at least 1.')),
            MaxValueValidator(5, message=_('Rating must be at most 5.'))
        ],
        help_text=_('Rating from 1 to 5 stars')
    )

    comment = models.TextField(
        _('comment'),
        blank=True,
        default='',
        validators=[MaxLengthValidator(500)],
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('rating')
        verbose_name_plural = _('ratings')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['reviewee'], name='rating_reviewee_idx'),
            models.Index(fields=['rating'], name='rating_stars_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['trade', 'reviewer'],
                name='unique_rating_per_trade_reviewer'
            )
        ]

    def __str__(self):
        return f"Rating by {self.reviewer_id} for {self.reviewee_id} - {self.rating}★"

    def clean(self):
        super().clean()

        if self.reviewer_id and self.reviewee_id and self.reviewer_id == self.reviewee_id:
            raise ValidationError({
                'reviewee': _('Reviewer and reviewee cannot be the same user.')
            })


class LoyaltyCredit(models.Model):
    """
    Record of the loyalty points a (trade, reviewer) pair has earned.

    Written once, with the first rating the reviewer submits for the trade.
    Deleting or editing that rating leaves the credit in place, so a
    resubmitted rating never earns points again.
    """

    trade = models.ForeignKey(
        Trade,
        on_delete=models.CASCADE,
        related_name='loyalty_credits',
    )

    reviewer = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='loyalty_credits_given',
    )

    reviewee = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='loyalty_credits_received',
    )

    points = models.PositiveIntegerField(_('points'))

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    class Meta:
        verbose_name = _('loyalty credit')
        verbose_name_plural = _('loyalty credits')
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['trade', 'reviewer'],
                name='unique_loyalty_credit_per_trade_reviewer'
            )
        ]

    def __str__(self):
        return f"+{self.points} for {self.reviewee_id} (trade {self.trade_id}, reviewer {self.reviewer_id})"
