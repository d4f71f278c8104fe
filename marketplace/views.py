"""
API views for the Item Swap Marketplace.

Views translate HTTP into service calls. Engine errors raised by the services
are rendered by ``marketplace.exception_handler.api_exception_handler``.
"""

import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.generics import ListAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Item, Trade, User
from .serializers import (
    ItemCreateSerializer,
    ItemSerializer,
    ItemUpdateSerializer,
    NearbyItemsQuerySerializer,
    RatingCreateSerializer,
    RatingSerializer,
    RatingStatsSerializer,
    RatingUpdateSerializer,
    ReputationSerializer,
    TradeAcceptSerializer,
    TradeRequestCreateSerializer,
    TradeRequestSerializer,
    TradeSerializer,
)
from .services import distance, items, ratings, trade_requests, trades

logger = logging.getLogger(__name__)


class ClientIPMixin:

    def get_client_ip(self, request):
        """
        Get client IP address from request.
        Handles proxy headers for accurate IP detection.
        """
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            ip = x_forwarded_for.split(',')[0]
        else:
            ip = request.META.get('REMOTE_ADDR')
        return ip


# ============================================================================
# Items
# ============================================================================

class ItemCreateView(ClientIPMixin, APIView):
    """
    API endpoint for listing a new item.

    POST /api/items/
    Headers: Authorization: Bearer <access_token>
    Request body:
    {
        "title": "Road bike",
        "description": "Steel frame, 56cm",
        "category": "Sports",
        "condition": "GOOD",
        "latitude": 51.5074,
        "longitude": -0.1278,
        "image_urls": ["https://cdn.example.com/bike.jpg"]
    }

    Success response (201): the created item, status AVAILABLE.

    Error responses:
    - 400: Invalid fields or coordinates
    - 401: Missing, invalid, or expired JWT token
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = ItemCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        item = items.post_item(request.user, **serializer.validated_data)

        logger.info(
            f"Item listed via API. Item ID: {item.pk}, "
            f"User: {request.user.email} (ID: {request.user.id}), "
            f"IP: {self.get_client_ip(request)}"
        )
        return Response(
            ItemSerializer(item, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )


class ItemDetailView(ClientIPMixin, APIView):
    """
    API endpoint for a single item.

    GET    /api/items/<id>/   Item details
    PATCH  /api/items/<id>/   Edit descriptive fields (owner only, AVAILABLE only)
    DELETE /api/items/<id>/   Remove the listing (owner only, AVAILABLE only)

    Error responses:
    - 400: Invalid fields
    - 403: Not the owner
    - 404: Item not found
    - 409: Item is not AVAILABLE
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk, *args, **kwargs):
        item = items.get_item(pk)
        return Response(ItemSerializer(item, context={'request': request}).data)

    def patch(self, request, pk, *args, **kwargs):
        serializer = ItemUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        item = items.update_item(request.user, pk, **serializer.validated_data)
        return Response(ItemSerializer(item, context={'request': request}).data)

    def delete(self, request, pk, *args, **kwargs):
        item = items.remove_item(request.user, pk)

        logger.info(
            f"Item removed via API. Item ID: {item.pk}, "
            f"User: {request.user.email} (ID: {request.user.id}), "
            f"IP: {self.get_client_ip(request)}"
        )
        return Response(ItemSerializer(item, context={'request': request}).data)


class NearbyItemsView(APIView):
    """
    Available items ranked by distance from the caller.

    GET /api/items/nearby/?latitude=51.5&longitude=-0.12&radius_km=10&category=Books

    Each result carries ``distance_km`` (one decimal) and a display label
    such as "350m away". The caller's own items are excluded. Items without
    coordinates are listed last, or dropped when ``radius_km`` is given.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        query = NearbyItemsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        candidates = Item.objects.filter(
            status=Item.Status.AVAILABLE
        ).exclude(
            owner=request.user
        ).select_related('owner').prefetch_related('images')

        if params.get('category'):
            candidates = candidates.filter(category__iexact=params['category'])

        ranked = distance.rank_by_distance(
            candidates,
            params['latitude'],
            params['longitude'],
            max_distance_km=params.get('radius_km'),
        )

        results = []
        for item, km in ranked:
            data = ItemSerializer(item, context={'request': request}).data
            data['distance_km'] = round(km, 1) if km is not None else None
            data['distance_display'] = distance.format_distance(km) if km is not None else None
            results.append(data)

        return Response({'count': len(results), 'results': results})


# ============================================================================
# Trade requests
# ============================================================================

class TradeRequestCreateView(ClientIPMixin, APIView):
    """
    API endpoint for proposing a trade.

    POST /api/trades/requests/
    Request body: {"requested_item_id": 12, "offered_item_id": 7}

    Success response (201): the PENDING trade request.

    Error responses:
    - 403: The offered item is not the caller's
    - 404: Either item not found
    - 409: Self trade, unavailable item, or duplicate pending request
    """
    permission_classes = [IsAuthenticated]
    throttle_scope = 'trade_requests'

    def post(self, request, *args, **kwargs):
        serializer = TradeRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        trade_request = trade_requests.create_request(
            request.user,
            serializer.validated_data['requested_item_id'],
            serializer.validated_data['offered_item_id'],
        )

        logger.info(
            f"Trade request created via API. Request ID: {trade_request.pk}, "
            f"User: {request.user.email} (ID: {request.user.id}), "
            f"IP: {self.get_client_ip(request)}"
        )
        return Response(
            TradeRequestSerializer(trade_request).data,
            status=status.HTTP_201_CREATED
        )


class ReceivedTradeRequestsView(ListAPIView):
    """
    Requests for the caller's items, newest first.

    GET /api/trades/requests/received/?status=PENDING
    """
    serializer_class = TradeRequestSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return trade_requests.received_requests(
            self.request.user,
            status=self.request.query_params.get('status')
        )


class SentTradeRequestsView(ListAPIView):
    """
    Requests the caller has made, newest first.

    GET /api/trades/requests/sent/?status=PENDING
    """
    serializer_class = TradeRequestSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return trade_requests.sent_requests(
            self.request.user,
            status=self.request.query_params.get('status')
        )


class TradeRequestAcceptView(ClientIPMixin, APIView):
    """
    Accept a pending request (owner of the requested item only).

    POST /api/trades/requests/<id>/accept/
    Request body (optional): {"location": "Central Library entrance"}

    Success response (201): the new PENDING trade. Both items become
    RESERVED and competing pending requests are rejected.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, pk, *args, **kwargs):
        serializer = TradeAcceptSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        trade = trade_requests.accept_request(
            request.user, pk, location=serializer.validated_data['location']
        )

        logger.info(
            f"Trade request accepted via API. Request ID: {pk}, Trade ID: {trade.pk}, "
            f"User: {request.user.email} (ID: {request.user.id}), "
            f"IP: {self.get_client_ip(request)}"
        )
        return Response(TradeSerializer(trade).data, status=status.HTTP_201_CREATED)


class TradeRequestRejectView(APIView):
    """POST /api/trades/requests/<id>/reject/ (owner of the requested item only)."""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk, *args, **kwargs):
        trade_request = trade_requests.reject_request(request.user, pk)
        return Response(TradeRequestSerializer(trade_request).data)


class TradeRequestCancelView(APIView):
    """POST /api/trades/requests/<id>/cancel/ (requester only)."""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk, *args, **kwargs):
        trade_request = trade_requests.cancel_request(request.user, pk)
        return Response(TradeRequestSerializer(trade_request).data)


# ============================================================================
# Trades
# ============================================================================

class TradeListView(ListAPIView):
    """
    Trades the caller takes part in, newest first.

    GET /api/trades/?status=COMPLETED
    """
    serializer_class = TradeSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        status_filter = self.request.query_params.get('status')
        if status_filter and status_filter not in Trade.Status.values:
            return Trade.objects.none()
        return trades.trades_for_user(self.request.user, status=status_filter)


class TradeDetailView(APIView):
    """GET /api/trades/<id>/ (participants only)."""
    permission_classes = [IsAuthenticated]

    def get(self, request, pk, *args, **kwargs):
        trade = trades.get_trade_for_participant(request.user, pk)
        return Response(TradeSerializer(trade).data)


class TradeCompleteView(ClientIPMixin, APIView):
    """
    Mark a pending trade as completed (either participant).

    POST /api/trades/<id>/complete/

    Success response (200): the COMPLETED trade; both items are SWAPPED.

    Error responses:
    - 403: Not a participant
    - 404: Trade not found
    - 409: Trade already completed, or cancelled
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, pk, *args, **kwargs):
        trade = trades.complete(request.user, pk)

        logger.info(
            f"Trade completed via API. Trade ID: {trade.pk}, "
            f"User: {request.user.email} (ID: {request.user.id}), "
            f"IP: {self.get_client_ip(request)}"
        )
        return Response(TradeSerializer(trade).data)


class TradeCancelView(ClientIPMixin, APIView):
    """
    Cancel a pending trade (either participant). Both items become AVAILABLE.

    POST /api/trades/<id>/cancel/
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, pk, *args, **kwargs):
        trade = trades.cancel(request.user, pk)

        logger.info(
            f"Trade cancelled via API. Trade ID: {trade.pk}, "
            f"User: {request.user.email} (ID: {request.user.id}), "
            f"IP: {self.get_client_ip(request)}"
        )
        return Response(TradeSerializer(trade).data)


# ============================================================================
# Ratings and reputation
# ============================================================================

class RatingCreateView(ClientIPMixin, APIView):
    """
    API endpoint for rating the counterpart of a completed trade.

    POST /api/ratings/
    Request body: {"trade_id": 3, "rating": 5, "comment": "Smooth swap"}

    The reviewee is computed from the trade. On success the reviewee earns
    loyalty points for the stars given.

    Error responses:
    - 400: Rating outside 1-5, comment too long, or reviewee mismatch
    - 403: Not a participant
    - 404: Trade not found
    - 409: Trade not completed, already rated, or self rating
    """
    permission_classes = [IsAuthenticated]
    throttle_scope = 'ratings'

    def post(self, request, *args, **kwargs):
        serializer = RatingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        rating = ratings.submit_rating(
            data['trade_id'],
            request.user,
            data['rating'],
            comment=data['comment'],
            reviewee_id=data.get('reviewee_id'),
        )

        logger.info(
            f"Rating submitted via API. Rating ID: {rating.pk}, Trade ID: {rating.trade_id}, "
            f"User: {request.user.email} (ID: {request.user.id}), "
            f"IP: {self.get_client_ip(request)}"
        )
        return Response(RatingSerializer(rating).data, status=status.HTTP_201_CREATED)


class RatingDetailView(APIView):
    """
    PATCH  /api/ratings/<id>/   Edit stars or comment (original reviewer only)
    DELETE /api/ratings/<id>/   Delete the rating (original reviewer only)

    Loyalty points already credited are kept in both cases.
    """
    permission_classes = [IsAuthenticated]

    def patch(self, request, pk, *args, **kwargs):
        serializer = RatingUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        rating = ratings.update_rating(
            request.user,
            pk,
            stars=serializer.validated_data.get('rating'),
            comment=serializer.validated_data.get('comment'),
        )
        return Response(RatingSerializer(rating).data)

    def delete(self, request, pk, *args, **kwargs):
        ratings.delete_rating(request.user, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class UserRatingsView(ListAPIView):
    """
    Ratings a user has received, newest first.

    GET /api/ratings/user/<user_id>/
    """
    serializer_class = RatingSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        user = get_object_or_404(User, pk=self.kwargs['user_id'])
        return ratings.ratings_received(user.pk)


class UserRatingStatsView(APIView):
    """
    Aggregate rating statistics for a user.

    GET /api/ratings/stats/<user_id>/

    Success response (200):
    {
        "user_id": 4,
        "average_rating": "4.50",
        "total_ratings": 2,
        "rating_distribution": {"1": 0, "2": 0, "3": 0, "4": 1, "5": 1}
    }
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, user_id, *args, **kwargs):
        stats = ratings.get_stats(user_id)
        stats['user_id'] = user_id
        return Response(RatingStatsSerializer(stats).data)


class UserReputationView(APIView):
    """
    Loyalty points, badge and progress to the next badge.

    GET /api/users/<user_id>/reputation/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, user_id, *args, **kwargs):
        user = get_object_or_404(User, pk=user_id)
        return Response(ReputationSerializer(user).data)
