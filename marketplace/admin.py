"""
Django admin configuration for the Item Swap Marketplace.

Statuses and reputation fields are read-only here: they only change through
the services, which enforce the transition tables and the points ledger.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import Item, ItemImage, LoyaltyCredit, Rating, Trade, TradeRequest, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Custom admin interface for User model.

    Extends Django's UserAdmin with profile and reputation fields.
    """

    list_display = [
        'email',
        'username',
        'badge',
        'loyalty_points',
        'average_rating',
        'total_ratings',
        'is_staff',
        'is_active',
        'created_at',
    ]

    list_filter = [
        'badge',
        'is_staff',
        'is_superuser',
        'is_active',
        'created_at',
    ]

    search_fields = [
        'email',
        'username',
        'first_name',
        'last_name',
    ]

    ordering = ['-created_at']

    fieldsets = (
        (None, {
            'fields': ('username', 'password')
        }),
        (_('Personal Info'), {
            'fields': (
                'first_name',
                'last_name',
                'email',
                'bio',
                'image',
                'latitude',
                'longitude',
            )
        }),
        (_('Reputation'), {
            'fields': ('loyalty_points', 'badge', 'average_rating', 'total_ratings')
        }),
        (_('Permissions'), {
            'fields': (
                'is_active',
                'is_staff',
                'is_superuser',
                'groups',
                'user_permissions',
            ),
            'classes': ('collapse',),
        }),
        (_('Important Dates'), {
            'fields': ('last_login', 'date_joined', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': (
                'username',
                'email',
                'password1',
                'password2',
            ),
        }),
    )

    readonly_fields = [
        'loyalty_points',
        'badge',
        'average_rating',
        'total_ratings',
        'created_at',
        'updated_at',
        'last_login',
        'date_joined',
    ]

    date_hierarchy = 'created_at'

    list_per_page = 25

    def get_readonly_fields(self, request, obj=None):
        if obj:  # Editing an existing object
            return self.readonly_fields
        return []


class ItemImageInline(admin.TabularInline):
    model = ItemImage
    extra = 0
    fields = ['url', 'order', 'uploaded_at']
    readonly_fields = ['uploaded_at']
    ordering = ['order']


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):

    list_display = [
        'title',
        'owner',
        'category',
        'condition',
        'status',
        'posted_at',
    ]

    list_filter = [
        'status',
        'condition',
        'category',
        'posted_at',
    ]

    search_fields = [
        'title',
        'description',
        'owner__email',
        'owner__username',
    ]

    readonly_fields = ['status', 'posted_at', 'updated_at']

    ordering = ['-posted_at']

    date_hierarchy = 'posted_at'

    list_per_page = 25

    inlines = [ItemImageInline]

    fieldsets = (
        (None, {
            'fields': ('owner', 'title', 'description')
        }),
        (_('Details'), {
            'fields': ('category', 'condition', 'status')
        }),
        (_('Location'), {
            'fields': ('latitude', 'longitude')
        }),
        (_('Timestamps'), {
            'fields': ('posted_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )


@admin.register(TradeRequest)
class TradeRequestAdmin(admin.ModelAdmin):

    list_display = [
        'id',
        'requester',
        'requested_item',
        'offered_item',
        'status',
        'requested_at',
        'responded_at',
    ]

    list_filter = [
        'status',
        'requested_at',
    ]

    search_fields = [
        'requester__email',
        'requested_item__title',
        'offered_item__title',
    ]

    readonly_fields = ['requester', 'requested_item', 'offered_item', 'status', 'requested_at', 'responded_at']

    ordering = ['-requested_at']

    list_per_page = 25


@admin.register(Trade)
class TradeAdmin(admin.ModelAdmin):

    list_display = [
        'id',
        'requester',
        'owner',
        'requested_item',
        'offered_item',
        'status',
        'created_at',
        'completed_at',
    ]

    list_filter = [
        'status',
        'created_at',
        'completed_at',
    ]

    search_fields = [
        'requester__email',
        'owner__email',
        'requested_item__title',
        'offered_item__title',
    ]

    readonly_fields = [
        'trade_request',
        'requester',
        'owner',
        'requested_item',
        'offered_item',
        'status',
        'completed_at',
        'created_at',
        'updated_at',
    ]

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25

    fieldsets = (
        (None, {
            'fields': ('trade_request', 'requester', 'owner')
        }),
        (_('Items'), {
            'fields': ('requested_item', 'offered_item', 'location')
        }),
        (_('Status'), {
            'fields': ('status', 'completed_at')
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )


@admin.register(Rating)
class RatingAdmin(admin.ModelAdmin):

    list_display = [
        'id',
        'reviewer',
        'reviewee',
        'trade',
        'rating',
        'created_at',
    ]

    list_filter = [
        'rating',
        'created_at',
    ]

    search_fields = [
        'reviewer__email',
        'reviewer__username',
        'reviewee__email',
        'reviewee__username',
        'comment',
    ]

    readonly_fields = ['trade', 'reviewer', 'reviewee', 'created_at', 'updated_at']

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25

    fieldsets = (
        (None, {
            'fields': ('reviewer', 'reviewee', 'trade')
        }),
        (_('Rating Content'), {
            'fields': ('rating', 'comment')
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )


@admin.register(LoyaltyCredit)
class LoyaltyCreditAdmin(admin.ModelAdmin):
    """Audit view of points credited. Credits are never edited or deleted."""

    list_display = [
        'id',
        'reviewee',
        'reviewer',
        'trade',
        'points',
        'created_at',
    ]

    search_fields = [
        'reviewee__email',
        'reviewee__username',
        'reviewer__email',
        'reviewer__username',
    ]

    readonly_fields = ['trade', 'reviewer', 'reviewee', 'points', 'created_at']

    ordering = ['-created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
