"""
Test suite for the custom User model.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import IntegrityError
from django.test import TestCase

User = get_user_model()


class UserModelEmailTests(TestCase):
    """Test email validation and constraints."""

    def test_email_required(self):
        with self.assertRaises(ValidationError):
            user = User(username='testuser')
            user.full_clean()

    def test_invalid_email_format(self):
        for email in ('invalidemail.com', 'invalid@@email.com', 'user@', '@domain.com'):
            with self.subTest(email=email):
                with self.assertRaises(ValidationError):
                    User(username='testuser', email=email).full_clean()

    def test_duplicate_email_constraint(self):
        User.objects.create_user(username='user1', email='same@test.com', password='testpass123')

        with self.assertRaises(IntegrityError):
            User.objects.create_user(username='user2', email='same@test.com', password='testpass123')

    def test_email_case_insensitivity(self):
        """Emails are stored lowercase so mixed-case duplicates collide."""
        user = User.objects.create_user(username='user1', email='Trader@Test.COM', password='testpass123')
        self.assertEqual(user.email, 'trader@test.com')

        with self.assertRaises(IntegrityError):
            User.objects.create_user(username='user2', email='TRADER@test.com', password='testpass123')

    def test_str_method_returns_email(self):
        user = User.objects.create_user(username='user1', email='user1@test.com', password='testpass123')
        self.assertEqual(str(user), 'user1@test.com')


class UserModelReputationTests(TestCase):
    """Test reputation field defaults and bounds."""

    def setUp(self):
        self.user = User.objects.create_user(
            username='trader',
            email='trader@test.com',
            password='testpass123'
        )

    def test_reputation_defaults(self):
        self.assertEqual(self.user.loyalty_points, 0)
        self.assertEqual(self.user.badge, 'BRONZE')
        self.assertEqual(self.user.average_rating, Decimal('0.00'))
        self.assertEqual(self.user.total_ratings, 0)

    def test_badge_display(self):
        self.assertEqual(self.user.badge_display, {'label': 'Bronze Trader', 'color': 'amber'})

        self.user.badge = 'DIAMOND'
        self.assertEqual(self.user.badge_display['label'], 'Diamond Trader')

    def test_invalid_badge(self):
        self.user.badge = 'PLATINUM'
        with self.assertRaises(ValidationError):
            self.user.full_clean()

    def test_average_rating_bounds(self):
        for value in (Decimal('-0.01'), Decimal('5.01')):
            with self.subTest(value=value):
                self.user.average_rating = value
                with self.assertRaises(ValidationError):
                    self.user.full_clean()

    def test_location_is_optional_and_validated(self):
        self.user.full_clean()

        self.user.latitude = 91
        self.user.longitude = 0
        with self.assertRaises(ValidationError):
            self.user.full_clean()

    def test_image_must_be_url(self):
        self.user.image = 'not a url'
        with self.assertRaises(ValidationError):
            self.user.full_clean()

    def test_user_authentication(self):
        self.assertTrue(self.user.check_password('testpass123'))
        self.assertFalse(self.user.check_password('wrong'))
