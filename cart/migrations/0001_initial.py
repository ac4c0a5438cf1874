import uuid

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Cart',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('user_id', models.CharField(blank=True, max_length=64, null=True)),
                ('session_key', models.CharField(blank=True, max_length=64, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'constraints': [
                    models.UniqueConstraint(
                        condition=models.Q(('user_id__isnull', False)),
                        fields=('user_id',),
                        name='unique_cart_per_user',
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(('session_key__isnull', False)),
                        fields=('session_key',),
                        name='unique_cart_per_session',
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(('session_key__isnull', True), ('user_id__isnull', False)),
                            models.Q(('session_key__isnull', False), ('user_id__isnull', True)),
                            _connector='OR',
                        ),
                        name='cart_has_single_owner',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='CartItem',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('product_id', models.CharField(max_length=64)),
                ('variant_id', models.CharField(blank=True, max_length=64, null=True)),
                ('price_at_addition', models.DecimalField(
                    decimal_places=2,
                    max_digits=12,
                    validators=[django.core.validators.MinValueValidator(0)],
                )),
                ('quantity', models.PositiveIntegerField(
                    default=1,
                    validators=[django.core.validators.MinValueValidator(1)],
                )),
                ('added_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('cart', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='items',
                    to='cart.cart',
                )),
            ],
            options={
                'ordering': ['added_at', 'id'],
                'indexes': [models.Index(fields=['product_id'], name='cart_item_product_idx')],
                'constraints': [
                    models.UniqueConstraint(
                        condition=models.Q(('variant_id__isnull', False)),
                        fields=('cart', 'product_id', 'variant_id'),
                        name='unique_variant_line_per_cart',
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(('variant_id__isnull', True)),
                        fields=('cart', 'product_id'),
                        name='unique_product_line_per_cart',
                    ),
                    models.CheckConstraint(
                        condition=models.Q(('quantity__gte', 1)),
                        name='cart_item_quantity_positive',
                    ),
                ],
            },
        ),
    ]
