import uuid
from decimal import Decimal

from django.db import models
from django.core.validators import MinValueValidator


class Cart(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Reference to external account service (not a ForeignKey)
    user_id = models.CharField(max_length=64, null=True, blank=True)

    # For anonymous visitors
    session_key = models.CharField(max_length=64, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['user_id'],
                condition=models.Q(user_id__isnull=False),
                name='unique_cart_per_user',
            ),
            models.UniqueConstraint(
                fields=['session_key'],
                condition=models.Q(session_key__isnull=False),
                name='unique_cart_per_session',
            ),
            # Owned by an account XOR by a session
            models.CheckConstraint(
                condition=(
                    models.Q(user_id__isnull=False, session_key__isnull=True)
                    | models.Q(user_id__isnull=True, session_key__isnull=False)
                ),
                name='cart_has_single_owner',
            ),
        ]

    def __str__(self):
        identifier = f"User:{self.user_id}" if self.user_id else f"Session:{self.session_key}"
        return f"Cart {self.id} ({identifier})"

    @property
    def is_anonymous(self):
        return self.user_id is None

    def touch(self):
        self.save(update_fields=['updated_at'])


class CartItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    cart = models.ForeignKey(
        Cart,
        related_name='items',
        on_delete=models.CASCADE
    )

    # References to external product service
    product_id = models.CharField(max_length=64)
    variant_id = models.CharField(max_length=64, null=True, blank=True)

    # Price snapshot, immune to later product price changes
    price_at_addition = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(0)]
    )

    quantity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)]
    )

    added_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['added_at', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['cart', 'product_id', 'variant_id'],
                condition=models.Q(variant_id__isnull=False),
                name='unique_variant_line_per_cart',
            ),
            models.UniqueConstraint(
                fields=['cart', 'product_id'],
                condition=models.Q(variant_id__isnull=True),
                name='unique_product_line_per_cart',
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name='cart_item_quantity_positive',
            ),
        ]
        indexes = [
            models.Index(fields=['product_id'], name='cart_item_product_idx'),
        ]

    def __str__(self):
        return f"{self.quantity}x {self.product_id} ({self.variant_id or '-'})"

    @property
    def total_price(self):
        return (self.price_at_addition * self.quantity).quantize(Decimal('0.01'))
