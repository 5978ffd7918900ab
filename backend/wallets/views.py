from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from services import ledger
from services.fares import calculate_wallet_discount
from services.payments import charge
from .serializers import (
    WalletSummarySerializer,
    WalletCreditSerializer,
    WalletDebitSerializer,
    DiscountQuerySerializer,
)


# Utility: wallets belong to riders only
def require_rider(user):
    if not user.is_rider:
        return Response(
            {"error": "PermissionDenied", "message": "Only riders have a wallet"},
            status=status.HTTP_403_FORBIDDEN,
        )
    return None


class WalletView(APIView):
    """Balance and the last 20 transactions"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        denied = require_rider(request.user)
        if denied:
            return denied

        ledger.get_or_create_wallet(request.user)
        summary = ledger.get_summary(request.user)
        return Response(WalletSummarySerializer(summary).data)


class WalletCreditView(APIView):
    """
    Add money through Razorpay or PhonePe.

    POST Body:
    {
        "amount": 500,
        "payment_method": "razorpay",
        "payment_details": {}
    }
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        denied = require_rider(request.user)
        if denied:
            return denied

        serializer = WalletCreditSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        ledger.get_or_create_wallet(request.user)
        # Gateway first, outside the ledger transaction
        result = charge(data["payment_method"], data["amount"], data["payment_details"])
        balance = ledger.credit(
            request.user,
            data["amount"],
            method=data["payment_method"],
            external_transaction_id=result.transaction_id,
        )

        return Response({
            "message": "Money added successfully",
            "balance": balance,
            "transaction_id": result.transaction_id,
        }, status=status.HTTP_200_OK)


class WalletDebitView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        denied = require_rider(request.user)
        if denied:
            return denied

        serializer = WalletDebitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        balance = ledger.debit(
            request.user,
            serializer.validated_data["amount"],
            serializer.validated_data["description"],
        )
        return Response({"message": "Payment successful", "balance": balance})


class WalletDiscountView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        serializer = DiscountQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        return Response(calculate_wallet_discount(serializer.validated_data["amount"]))
