from rest_framework import serializers


class RenderedLineSerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    product_id = serializers.CharField(read_only=True)
    variant_id = serializers.CharField(read_only=True, allow_null=True)
    product_name = serializers.CharField(read_only=True, allow_null=True)
    product_image = serializers.CharField(read_only=True, allow_null=True)
    quantity = serializers.IntegerField(read_only=True)
    price = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        read_only=True
    )
    total = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        read_only=True
    )


class RenderedCartSerializer(serializers.Serializer):
    """
    Read-only representation of a rendered cart
    """
    id = serializers.UUIDField(read_only=True)
    user_id = serializers.CharField(read_only=True, allow_null=True)
    session_key = serializers.CharField(read_only=True, allow_null=True)
    items = RenderedLineSerializer(source='lines', many=True, read_only=True)
    item_count = serializers.IntegerField(read_only=True)
    total = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        read_only=True
    )


class AddToCartSerializer(serializers.Serializer):
    """
    Payload for adding a product (optionally a variant) to the cart.
    Quantity rules and product checks belong to the cart core.
    """
    product_id = serializers.CharField(max_length=64)
    variant_id = serializers.CharField(
        max_length=64,
        required=False,
        allow_null=True,
        default=None
    )
    quantity = serializers.IntegerField(default=1)


class UpdateCartItemSerializer(serializers.Serializer):
    quantity = serializers.IntegerField()
