from rest_framework import serializers

from .models import WalletTransaction


class WalletTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = WalletTransaction
        fields = ["id", "amount", "kind", "description", "payment_method", "external_transaction_id", "created_at"]
        read_only_fields = fields


class WalletSummarySerializer(serializers.Serializer):
    balance = serializers.DecimalField(max_digits=12, decimal_places=2)
    transactions = WalletTransactionSerializer(many=True)


class WalletCreditSerializer(serializers.Serializer):
    """Top-up through a payment gateway."""
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=1)
    payment_method = serializers.ChoiceField(choices=["razorpay", "phonepe"])
    payment_details = serializers.DictField(required=False, default=dict)


class WalletDebitSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    description = serializers.CharField(max_length=255)


class DiscountQuerySerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
