import decimal

import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import marketplace.validators


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('email', models.EmailField(error_messages={'unique': 'A user with that email already exists.'}, help_text='Required. Enter a valid email address.', max_length=254, unique=True, verbose_name='email address')),
                ('bio', models.TextField(blank=True, default='', help_text='Optional short introduction.', verbose_name='bio')),
                ('image', models.URLField(blank=True, default='', help_text='Avatar URL supplied by the image storage service.', max_length=500, verbose_name='image URL')),
                ('latitude', models.FloatField(blank=True, null=True, validators=[marketplace.validators.validate_latitude], verbose_name='latitude')),
                ('longitude', models.FloatField(blank=True, null=True, validators=[marketplace.validators.validate_longitude], verbose_name='longitude')),
                ('loyalty_points', models.PositiveIntegerField(default=0, help_text='Points accrued from ratings received.', verbose_name='loyalty points')),
                ('badge', models.CharField(choices=[('BRONZE', 'Bronze'), ('SILVER', 'Silver'), ('GOLD', 'Gold'), ('DIAMOND', 'Diamond'), ('RUBY', 'Ruby')], default='BRONZE', help_text='Reputation tier derived from loyalty points.', max_length=10, verbose_name='badge')),
                ('average_rating', models.DecimalField(decimal_places=2, default=decimal.Decimal('0.00'), help_text='Average of the ratings received.', max_digits=3, validators=[django.core.validators.MinValueValidator(decimal.Decimal('0.00'), message='Rating cannot be negative.'), django.core.validators.MaxValueValidator(decimal.Decimal('5.00'), message='Rating cannot exceed 5.00.')], verbose_name='average rating')),
                ('total_ratings', models.PositiveIntegerField(default=0, help_text='Number of ratings received.', verbose_name='total ratings')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['email'], name='user_email_idx'),
                    models.Index(fields=['badge'], name='user_badge_idx'),
                ],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Item',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=200, verbose_name='title')),
                ('description', models.TextField(verbose_name='description')),
                ('category', models.CharField(max_length=100, verbose_name='category')),
                ('condition', models.CharField(choices=[('NEW', 'New'), ('GOOD', 'Good'), ('FAIR', 'Fair'), ('POOR', 'Poor')], max_length=10, verbose_name='condition')),
                ('status', models.CharField(choices=[('AVAILABLE', 'Available'), ('RESERVED', 'Reserved'), ('SWAPPED', 'Swapped'), ('REMOVED', 'Removed')], default='AVAILABLE', max_length=10, verbose_name='status')),
                ('latitude', models.FloatField(blank=True, null=True, validators=[marketplace.validators.validate_latitude], verbose_name='latitude')),
                ('longitude', models.FloatField(blank=True, null=True, validators=[marketplace.validators.validate_longitude], verbose_name='longitude')),
                ('posted_at', models.DateTimeField(auto_now_add=True, verbose_name='posted at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('owner', models.ForeignKey(help_text='User who listed this item', on_delete=django.db.models.deletion.CASCADE, related_name='items', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'item',
                'verbose_name_plural': 'items',
                'ordering': ['-posted_at'],
                'indexes': [
                    models.Index(fields=['owner'], name='item_owner_idx'),
                    models.Index(fields=['status'], name='item_status_idx'),
                    models.Index(fields=['category'], name='item_category_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ItemImage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('url', models.URLField(max_length=500, verbose_name='url')),
                ('order', models.PositiveIntegerField(default=0, verbose_name='order')),
                ('uploaded_at', models.DateTimeField(auto_now_add=True, verbose_name='uploaded at')),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='images', to='marketplace.item')),
            ],
            options={
                'verbose_name': 'item image',
                'verbose_name_plural': 'item images',
                'ordering': ['order', 'uploaded_at'],
            },
        ),
        migrations.CreateModel(
            name='TradeRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('ACCEPTED', 'Accepted'), ('REJECTED', 'Rejected'), ('CANCELLED', 'Cancelled')], default='PENDING', max_length=10, verbose_name='status')),
                ('requested_at', models.DateTimeField(auto_now_add=True, verbose_name='requested at')),
                ('responded_at', models.DateTimeField(blank=True, null=True, verbose_name='responded at')),
                ('offered_item', models.ForeignKey(help_text='Item offered in exchange (owned by the requester)', on_delete=django.db.models.deletion.CASCADE, related_name='trade_requests_offering', to='marketplace.item')),
                ('requested_item', models.ForeignKey(help_text='Item being asked for (owned by the recipient)', on_delete=django.db.models.deletion.CASCADE, related_name='trade_requests_for', to='marketplace.item')),
                ('requester', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='trade_requests_sent', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'trade request',
                'verbose_name_plural': 'trade requests',
                'ordering': ['-requested_at'],
                'indexes': [
                    models.Index(fields=['requester'], name='traderequest_requester_idx'),
                    models.Index(fields=['status'], name='traderequest_status_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status', 'PENDING')), fields=('requester', 'requested_item', 'offered_item'), name='unique_pending_trade_request'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Trade',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('location', models.CharField(blank=True, default='', max_length=255, verbose_name='meeting location')),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('COMPLETED', 'Completed'), ('FAILED', 'Failed'), ('CANCELLED', 'Cancelled')], default='PENDING', max_length=10, verbose_name='status')),
                ('completed_at', models.DateTimeField(blank=True, null=True, verbose_name='completed at')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('offered_item', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='trades_as_offered', to='marketplace.item')),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='trades_as_owner', to=settings.AUTH_USER_MODEL)),
                ('requested_item', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='trades_as_requested', to='marketplace.item')),
                ('requester', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='trades_as_requester', to=settings.AUTH_USER_MODEL)),
                ('trade_request', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='trade', to='marketplace.traderequest')),
            ],
            options={
                'verbose_name': 'trade',
                'verbose_name_plural': 'trades',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['requester'], name='trade_requester_idx'),
                    models.Index(fields=['owner'], name='trade_owner_idx'),
                    models.Index(fields=['status'], name='trade_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Rating',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('rating', models.PositiveSmallIntegerField(help_text='Rating from 1 to 5 stars', validators=[django.core.validators.MinValueValidator(1, message='Rating must be at least 1.'), django.core.validators.MaxValueValidator(5, message='Rating must be at most 5.')], verbose_name='rating')),
                ('comment', models.TextField(blank=True, default='', validators=[django.core.validators.MaxLengthValidator(500)], verbose_name='comment')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('reviewee', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='ratings_received', to=settings.AUTH_USER_MODEL)),
                ('reviewer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='ratings_given', to=settings.AUTH_USER_MODEL)),
                ('trade', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='ratings', to='marketplace.trade')),
            ],
            options={
                'verbose_name': 'rating',
                'verbose_name_plural': 'ratings',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['reviewee'], name='rating_reviewee_idx'),
                    models.Index(fields=['rating'], name='rating_stars_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('trade', 'reviewer'), name='unique_rating_per_trade_reviewer'),
                ],
            },
        ),
    ]
