"""
lunch_orders.serializers

Boundary validation for everything that arrives untyped:
- checkout carts before they become a PendingOrder
- Stripe webhook events before the finalizer touches the database

CHANGE LOG
- 2026-09-05: Add cart / meal selection serializers.
- 2026-09-08: Add Stripe event + checkout session serializers.
- 2026-09-19: Accept legacy `probiotic` / `order_date` keys on meal lines.
"""

from rest_framework import serializers


class MenuChoiceSerializer(serializers.Serializer):
    id = serializers.CharField(max_length=128)
    display = serializers.CharField(max_length=255)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, default=0)


class SimpleChoiceSerializer(serializers.Serializer):
    id = serializers.CharField(max_length=128)
    display = serializers.CharField(max_length=255)


class ChildSerializer(serializers.Serializer):
    id = serializers.CharField(max_length=128)
    name = serializers.CharField(max_length=255)
    allergens = serializers.CharField(max_length=500, allow_blank=True, default="")
    is_teacher = serializers.BooleanField(default=False)
    year = serializers.CharField(max_length=32, allow_blank=True, allow_null=True, default=None)
    class_name = serializers.CharField(max_length=64, allow_blank=True, allow_null=True, default=None)


class SchoolSerializer(serializers.Serializer):
    id = serializers.CharField(max_length=128)
    name = serializers.CharField(max_length=255)
    address = serializers.CharField(max_length=500, allow_blank=True, default="")


class MealSelectionSerializer(serializers.Serializer):
    """One cart line: a meal for one recipient, on one date, at one school."""

    id = serializers.CharField(max_length=128, required=False, allow_blank=True)
    main = MenuChoiceSerializer()
    add_ons = MenuChoiceSerializer(many=True, default=list)
    fruit = SimpleChoiceSerializer(allow_null=True, default=None)
    side = SimpleChoiceSerializer(allow_null=True, default=None)
    child = ChildSerializer()
    school = SchoolSerializer()
    delivery_date = serializers.DateField()
    total = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)

    def to_internal_value(self, data):
        if isinstance(data, dict):
            data = dict(data)
            # Older storefront builds called the side a "probiotic" and the
            # delivery date "order_date".
            if "side" not in data and "probiotic" in data:
                data["side"] = data.pop("probiotic")
            if "delivery_date" not in data and "order_date" in data:
                data["delivery_date"] = data.pop("order_date")
        return super().to_internal_value(data)


class AppliedCouponSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=100)
    discount_amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)


class PendingCartSerializer(serializers.Serializer):
    meals = MealSelectionSerializer(many=True, allow_empty=False)
    subtotal = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    applied_coupon = AppliedCouponSerializer(allow_null=True, default=None)


class StripeEventSerializer(serializers.Serializer):
    """Envelope every Stripe webhook event shares."""

    id = serializers.CharField(max_length=255)
    type = serializers.CharField(max_length=255)
    data = serializers.DictField()

    def validate_data(self, value):
        obj = value.get("object")
        if not isinstance(obj, dict):
            raise serializers.ValidationError("data.object must be an object.")
        return value


class CheckoutSessionSerializer(serializers.Serializer):
    """The `data.object` of a checkout.session.* event (fields we rely on)."""

    id = serializers.CharField(max_length=255)
    payment_status = serializers.CharField(max_length=64)
    amount_total = serializers.IntegerField(min_value=0, allow_null=True, default=None)
    currency = serializers.CharField(max_length=12, allow_blank=True, allow_null=True, default="")
    # Informational only; the confirmation goes to the address stored at checkout.
    customer_email = serializers.CharField(allow_blank=True, allow_null=True, required=False)
    metadata = serializers.DictField(default=dict)
