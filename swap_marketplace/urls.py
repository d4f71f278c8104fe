"""
URL configuration for swap_marketplace project.

All API endpoints live under /api/ and expect a bearer token issued by the
session provider.
"""
from django.contrib import admin
from django.urls import path

from marketplace.views import (
    ItemCreateView,
    ItemDetailView,
    NearbyItemsView,
    RatingCreateView,
    RatingDetailView,
    ReceivedTradeRequestsView,
    SentTradeRequestsView,
    TradeCancelView,
    TradeCompleteView,
    TradeDetailView,
    TradeListView,
    TradeRequestAcceptView,
    TradeRequestCancelView,
    TradeRequestCreateView,
    TradeRequestRejectView,
    UserRatingStatsView,
    UserRatingsView,
    UserReputationView,
)


urlpatterns = [
    path('admin/', admin.site.urls),

    # Item endpoints
    path('api/items/', ItemCreateView.as_view(), name='item_create'),
    path('api/items/nearby/', NearbyItemsView.as_view(), name='item_nearby'),
    path('api/items/<int:pk>/', ItemDetailView.as_view(), name='item_detail'),

    # Trade request endpoints
    path('api/trades/requests/', TradeRequestCreateView.as_view(), name='trade_request_create'),
    path('api/trades/requests/received/', ReceivedTradeRequestsView.as_view(), name='trade_requests_received'),
    path('api/trades/requests/sent/', SentTradeRequestsView.as_view(), name='trade_requests_sent'),
    path('api/trades/requests/<int:pk>/accept/', TradeRequestAcceptView.as_view(), name='trade_request_accept'),
    path('api/trades/requests/<int:pk>/reject/', TradeRequestRejectView.as_view(), name='trade_request_reject'),
    path('api/trades/requests/<int:pk>/cancel/', TradeRequestCancelView.as_view(), name='trade_request_cancel'),

    # Trade endpoints
    path('api/trades/', TradeListView.as_view(), name='trade_list'),
    path('api/trades/<int:pk>/', TradeDetailView.as_view(), name='trade_detail'),
    path('api/trades/<int:pk>/complete/', TradeCompleteView.as_view(), name='trade_complete'),
    path('api/trades/<int:pk>/cancel/', TradeCancelView.as_view(), name='trade_cancel'),

    # Rating endpoints
    path('api/ratings/', RatingCreateView.as_view(), name='rating_create'),
    path('api/ratings/<int:pk>/', RatingDetailView.as_view(), name='rating_detail'),
    path('api/ratings/user/<int:user_id>/', UserRatingsView.as_view(), name='user_ratings'),
    path('api/ratings/stats/<int:user_id>/', UserRatingStatsView.as_view(), name='user_rating_stats'),

    # Reputation
    path('api/users/<int:user_id>/reputation/', UserReputationView.as_view(), name='user_reputation'),
]
