"""
Reputation policy: loyalty-point accrual and badge tiers.

Badges are derived from a user's loyalty points through an ordered,
enum-keyed threshold table. Thresholds must be non-decreasing in tier order
so that a larger point total can never demote a user.
"""

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class Badge(models.TextChoices):
    BRONZE = 'BRONZE', _('Bronze')
    SILVER = 'SILVER', _('Silver')
    GOLD = 'GOLD', _('Gold')
    DIAMOND = 'DIAMOND', _('Diamond')
    RUBY = 'RUBY', _('Ruby')


# Tier order, lowest first.
BADGE_ORDER = [Badge.BRONZE, Badge.SILVER, Badge.GOLD, Badge.DIAMOND, Badge.RUBY]

DEFAULT_BADGE_THRESHOLDS = {
    Badge.BRONZE: 0,
    Badge.SILVER: 100,
    Badge.GOLD: 250,
    Badge.DIAMOND: 500,
    Badge.RUBY: 1000,
}

BADGE_DISPLAY = {
    Badge.BRONZE: {'label': 'Bronze Trader', 'color': 'amber'},
    Badge.SILVER: {'label': 'Silver Trader', 'color': 'gray'},
    Badge.GOLD: {'label': 'Gold Trader', 'color': 'yellow'},
    Badge.DIAMOND: {'label': 'Diamond Trader', 'color': 'blue'},
    Badge.RUBY: {'label': 'Ruby Trader', 'color': 'red'},
}


def get_badge_thresholds():
    """
    Return the active threshold table.

    ``settings.BADGE_THRESHOLDS`` may override any subset of tiers; BRONZE
    always starts at zero.

    Raises:
        ImproperlyConfigured: If thresholds are not monotonic in tier order
    """
    from django.core.exceptions import ImproperlyConfigured

    thresholds = dict(DEFAULT_BADGE_THRESHOLDS)
    overrides = getattr(settings, 'BADGE_THRESHOLDS', None) or {}
    for key, value in overrides.items():
        thresholds[Badge(key)] = int(value)
    thresholds[Badge.BRONZE] = 0

    previous = 0
    for badge in BADGE_ORDER:
        if thresholds[badge] < previous:
            raise ImproperlyConfigured(
                f'BADGE_THRESHOLDS must be non-decreasing; {badge} is below the previous tier.'
            )
        previous = thresholds[badge]
    return thresholds


def badge_for_points(points):
    """Return the highest badge whose threshold ``points`` reaches."""
    thresholds = get_badge_thresholds()
    badge = Badge.BRONZE
    for tier in BADGE_ORDER:
        if points >= thresholds[tier]:
            badge = tier
    return badge


def points_for_stars(stars):
    """Loyalty points credited for a rating of ``stars``."""
    return stars * getattr(settings, 'LOYALTY_POINTS_PER_STAR', 5)


def next_badge(points):
    """
    Return ``(badge, points_needed)`` for the next tier, or ``(None, 0)``
    when the user already holds the top badge.
    """
    thresholds = get_badge_thresholds()
    for tier in BADGE_ORDER:
        if thresholds[tier] > points:
            return tier, thresholds[tier] - points
    return None, 0
