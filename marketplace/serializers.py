"""
Serializers for the Item Swap Marketplace API.

Input serializers only check request shape. Ownership, availability, state
and rating rules are enforced by the services so that every caller gets the
same errors.
"""

from rest_framework import serializers

from .models import Item, ItemImage, Rating, Trade, TradeRequest, User
from .reputation import next_badge
from .validators import validate_latitude, validate_longitude, validate_not_blank


class UserSummarySerializer(serializers.ModelSerializer):
    """
    Public view of a trading partner.

    Fields:
    - id, username
    - badge: Reputation tier
    - average_rating / total_ratings: Aggregates over ratings received
    """

    class Meta:
        model = User
        fields = ['id', 'username', 'badge', 'average_rating', 'total_ratings']
        read_only_fields = fields


class ItemImageSerializer(serializers.ModelSerializer):

    class Meta:
        model = ItemImage
        fields = ['id', 'url', 'order', 'uploaded_at']
        read_only_fields = fields


class ItemSerializer(serializers.ModelSerializer):
    owner = UserSummarySerializer(read_only=True)
    images = ItemImageSerializer(many=True, read_only=True)

    class Meta:
        model = Item
        fields = [
            'id',
            'owner',
            'title',
            'description',
            'category',
            'condition',
            'status',
            'latitude',
            'longitude',
            'images',
            'posted_at',
            'updated_at',
        ]
        read_only_fields = fields


class ItemSummarySerializer(serializers.ModelSerializer):

    class Meta:
        model = Item
        fields = ['id', 'owner_id', 'title', 'category', 'condition', 'status']
        read_only_fields = fields


class ItemCreateSerializer(serializers.Serializer):
    """
    Request body for listing an item.

    Fields:
    - title, description, category: Required, not blank
    - condition: One of NEW, GOOD, FAIR, POOR
    - latitude / longitude: Optional, supplied together
    - image_urls: Optional list of references from the image storage service
    """

    title = serializers.CharField(max_length=200, validators=[validate_not_blank])
    description = serializers.CharField(validators=[validate_not_blank])
    category = serializers.CharField(max_length=100, validators=[validate_not_blank])
    condition = serializers.ChoiceField(choices=Item.Condition.choices)
    latitude = serializers.FloatField(required=False, allow_null=True, validators=[validate_latitude])
    longitude = serializers.FloatField(required=False, allow_null=True, validators=[validate_longitude])
    image_urls = serializers.ListField(
        child=serializers.URLField(max_length=500),
        required=False,
        max_length=10,
        help_text='Up to 10 image URLs'
    )

    def validate(self, attrs):
        if (attrs.get('latitude') is None) != (attrs.get('longitude') is None):
            raise serializers.ValidationError({
                'latitude': 'Latitude and longitude must be provided together.'
            })
        return attrs


class ItemUpdateSerializer(serializers.Serializer):
    """Partial update of an item's descriptive fields. Status is not editable."""

    title = serializers.CharField(max_length=200, required=False, validators=[validate_not_blank])
    description = serializers.CharField(required=False, validators=[validate_not_blank])
    category = serializers.CharField(max_length=100, required=False, validators=[validate_not_blank])
    condition = serializers.ChoiceField(choices=Item.Condition.choices, required=False)
    latitude = serializers.FloatField(required=False, allow_null=True, validators=[validate_latitude])
    longitude = serializers.FloatField(required=False, allow_null=True, validators=[validate_longitude])

    def validate(self, attrs):
        if 'status' in self.initial_data:
            raise serializers.ValidationError({
                'status': 'Item status cannot be edited directly.'
            })
        if not attrs:
            raise serializers.ValidationError('No editable fields were provided.')
        return attrs


class NearbyItemsQuerySerializer(serializers.Serializer):
    latitude = serializers.FloatField()
    longitude = serializers.FloatField()
    radius_km = serializers.FloatField(required=False, min_value=0)
    category = serializers.CharField(required=False)


class TradeRequestCreateSerializer(serializers.Serializer):
    requested_item_id = serializers.IntegerField()
    offered_item_id = serializers.IntegerField()


class TradeRequestSerializer(serializers.ModelSerializer):
    requester = UserSummarySerializer(read_only=True)
    requested_item = ItemSummarySerializer(read_only=True)
    offered_item = ItemSummarySerializer(read_only=True)

    class Meta:
        model = TradeRequest
        fields = [
            'id',
            'requester',
            'requested_item',
            'offered_item',
            'status',
            'requested_at',
            'responded_at',
        ]
        read_only_fields = fields


class TradeAcceptSerializer(serializers.Serializer):
    location = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')


class TradeSerializer(serializers.ModelSerializer):
    """
    A materialized trade.

    ``requester`` receives ``requested_item``; ``owner`` receives
    ``offered_item``.
    """

    requester = UserSummarySerializer(read_only=True)
    owner = UserSummarySerializer(read_only=True)
    requested_item = ItemSummarySerializer(read_only=True)
    offered_item = ItemSummarySerializer(read_only=True)

    class Meta:
        model = Trade
        fields = [
            'id',
            'trade_request_id',
            'requester',
            'owner',
            'requested_item',
            'offered_item',
            'location',
            'status',
            'completed_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class RatingCreateSerializer(serializers.Serializer):
    """
    Request body for rating a completed trade.

    Fields:
    - trade_id: Required
    - rating: Required, 1 to 5 stars
    - comment: Optional
    - reviewee_id: Optional; when given it must match the counterpart
      computed from the trade
    """

    trade_id = serializers.IntegerField()
    rating = serializers.IntegerField()
    comment = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False, default='')
    reviewee_id = serializers.IntegerField(required=False, allow_null=True)


class RatingUpdateSerializer(serializers.Serializer):
    rating = serializers.IntegerField(required=False)
    comment = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError('Provide a rating or a comment to update.')
        return attrs


class RatingSerializer(serializers.ModelSerializer):
    reviewer = UserSummarySerializer(read_only=True)
    reviewee = UserSummarySerializer(read_only=True)

    class Meta:
        model = Rating
        fields = [
            'id',
            'trade_id',
            'reviewer',
            'reviewee',
            'rating',
            'comment',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class RatingStatsSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    average_rating = serializers.DecimalField(max_digits=3, decimal_places=2)
    total_ratings = serializers.IntegerField()
    rating_distribution = serializers.DictField(child=serializers.IntegerField())


class ReputationSerializer(serializers.ModelSerializer):
    """
    Reputation profile of a user.

    Fields:
    - loyalty_points / badge: Current standing
    - badge_display: Label and colour for the badge
    - next_badge / points_to_next_badge: Progress to the next tier, null and
      0 at the top tier
    """

    badge_display = serializers.DictField(read_only=True)
    next_badge = serializers.SerializerMethodField()
    points_to_next_badge = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id',
            'username',
            'loyalty_points',
            'badge',
            'badge_display',
            'next_badge',
            'points_to_next_badge',
            'average_rating',
            'total_ratings',
        ]
        read_only_fields = fields

    def get_next_badge(self, obj):
        badge, _ = next_badge(obj.loyalty_points)
        return badge.value if badge is not None else None

    def get_points_to_next_badge(self, obj):
        _, needed = next_badge(obj.loyalty_points)
        return needed
