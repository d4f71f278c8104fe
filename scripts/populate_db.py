import os
import sys
import random

import django
from faker import Faker

# Add project root to Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set up Django environment
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'swap_marketplace.settings')
django.setup()

from marketplace.models import Item, User
from marketplace.services import items as item_service
from marketplace.services import ratings as rating_service
from marketplace.services import trade_requests as request_service
from marketplace.services import trades as trade_service

fake = Faker()

CATEGORIES = ['Books', 'Electronics', 'Furniture', 'Clothing', 'Sports', 'Kitchen', 'Toys', 'Music']


def create_users(num_users=20):
    print(f"Creating {num_users} users...")
    users = []

    # Users cluster around one city so nearby listings are meaningful
    base_lat, base_lon = 51.5074, -0.1278

    for _ in range(num_users):
        email = fake.unique.email()
        username = email.split('@')[0]
        user = User.objects.create_user(
            username=username,
            email=email,
            password='password123',
            first_name=fake.first_name(),
            last_name=fake.last_name(),
            bio=fake.sentence(nb_words=12),
            latitude=base_lat + random.uniform(-0.2, 0.2),
            longitude=base_lon + random.uniform(-0.3, 0.3),
        )
        users.append(user)

    print(f"Created {len(users)} users.")
    return users


def create_items(users, per_user=3):
    print("Creating items...")
    items = []

    for user in users:
        for _ in range(random.randint(1, per_user)):
            located = random.random() < 0.8
            item = item_service.post_item(
                user,
                title=fake.catch_phrase()[:200],
                description=fake.paragraph(nb_sentences=3),
                category=random.choice(CATEGORIES),
                condition=random.choice(Item.Condition.values),
                latitude=user.latitude + random.uniform(-0.01, 0.01) if located else None,
                longitude=user.longitude + random.uniform(-0.01, 0.01) if located else None,
                image_urls=[fake.image_url() for _ in range(random.randint(0, 3))],
            )
            items.append(item)

    print(f"Created {len(items)} items.")
    return items


def create_trades(users, items, num_requests=30):
    print("Creating trade requests and trades...")
    requests = []

    for _ in range(num_requests):
        requester = random.choice(users)
        own = [i for i in items if i.owner_id == requester.pk]
        others = [i for i in items if i.owner_id != requester.pk]
        if not own or not others:
            continue

        offered = random.choice(own)
        wanted = random.choice(others)
        item_ids = (offered.pk, wanted.pk)
        if Item.objects.filter(pk__in=item_ids, status=Item.Status.AVAILABLE).count() != 2:
            continue
        if any(r.requester_id == requester.pk and {r.offered_item_id, r.requested_item_id} == set(item_ids)
               for r in requests):
            continue

        requests.append(request_service.create_request(requester, wanted.pk, offered.pk))

    print(f"Created {len(requests)} trade requests.")

    completed = []
    for trade_request in requests:
        trade_request.refresh_from_db()
        if trade_request.status != trade_request.Status.PENDING:
            continue

        recipient = trade_request.requested_item.owner
        outcome = random.choice(['accept', 'accept', 'reject', 'cancel', 'leave'])

        if outcome == 'reject':
            request_service.reject_request(recipient, trade_request.pk)
        elif outcome == 'cancel':
            request_service.cancel_request(trade_request.requester, trade_request.pk)
        elif outcome == 'accept':
            trade = request_service.accept_request(recipient, trade_request.pk, location=fake.street_address())
            if random.random() < 0.7:
                completed.append(trade_service.complete(recipient, trade.pk))
            elif random.random() < 0.5:
                trade_service.cancel(trade_request.requester, trade.pk)

    print(f"Completed {len(completed)} trades.")
    return completed


def create_ratings(trades):
    print("Creating ratings...")
    count = 0

    for trade in trades:
        for reviewer in (trade.requester, trade.owner):
            if random.random() < 0.8:
                rating_service.submit_rating(
                    trade.pk,
                    reviewer,
                    random.choices([1, 2, 3, 4, 5], weights=[1, 1, 2, 4, 6])[0],
                    comment=fake.sentence(nb_words=10),
                )
                count += 1

    print(f"Created {count} ratings.")


def main():
    print("Starting database population...")

    users = create_users(num_users=20)
    items = create_items(users)
    trades = create_trades(users, items)
    create_ratings(trades)

    print("Database population completed successfully!")


if __name__ == '__main__':
    main()
