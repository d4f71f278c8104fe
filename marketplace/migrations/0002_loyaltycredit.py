import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('marketplace', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='LoyaltyCredit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('points', models.PositiveIntegerField(verbose_name='points')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('reviewee', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='loyalty_credits_received', to=settings.AUTH_USER_MODEL)),
                ('reviewer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='loyalty_credits_given', to=settings.AUTH_USER_MODEL)),
                ('trade', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='loyalty_credits', to='marketplace.trade')),
            ],
            options={
                'verbose_name': 'loyalty credit',
                'verbose_name_plural': 'loyalty credits',
                'ordering': ['-created_at'],
                'constraints': [
                    models.UniqueConstraint(fields=('trade', 'reviewer'), name='unique_loyalty_credit_per_trade_reviewer'),
                ],
            },
        ),
    ]
