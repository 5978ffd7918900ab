from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from services import ride_management
from services.ride_management import registry
from .serializers import (
    RideCreateSerializer,
    FareQuerySerializer,
    RideStartSerializer,
    RideEndSerializer,
    RideCancelSerializer,
    RideRateSerializer,
    RidePaymentSerializer,
    RideListQuerySerializer,
    serialize_ride_for,
)

# Service errors raised below are turned into responses by
# common.exception_handler.service_exception_handler.


def _result_response(result, user, status_code=status.HTTP_200_OK):
    body = {
        'message': result.message,
        'ride': serialize_ride_for(result.ride, user),
        **(result.extra or {}),
    }
    return Response(body, status=status_code)


# ==================== Rider APIs ====================

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def rides(request):
    """GET: ride history (filters: status, date_range). POST: request a ride."""
    if request.method == 'POST':
        serializer = RideCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        coords = None
        if 'pickup_latitude' in data:
            coords = (data['pickup_latitude'], data['pickup_longitude'])

        result = ride_management.create_ride(
            request.user,
            pickup=data['pickup'],
            destination=data['destination'],
            vehicle_class=data['vehicle_type'],
            wallet_linked=data['wallet_linked'],
            pickup_coords=coords,
        )
        return _result_response(result, request.user, status.HTTP_201_CREATED)

    query = RideListQuerySerializer(data=request.query_params)
    query.is_valid(raise_exception=True)
    history = registry.list_by_party(
        request.user,
        status=query.validated_data.get('status'),
        date_range=query.validated_data.get('date_range', registry.DEFAULT_DATE_RANGE),
    )
    return Response({
        'count': len(history),
        'rides': [serialize_ride_for(ride, request.user) for ride in history],
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def fare_estimate(request):
    """Fares for every vehicle class between pickup and destination"""
    serializer = FareQuerySerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    return Response(ride_management.estimate_fare(
        serializer.validated_data['pickup'],
        serializer.validated_data['destination'],
    ))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def current_rides(request):
    """Rides still in progress for the caller (pending, accepted or ongoing)"""
    active = registry.current_for_party(request.user)
    return Response({
        'count': len(active),
        'rides': [serialize_ride_for(ride, request.user) for ride in active],
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def ride_detail(request, ride_id):
    ride = ride_management.get_ride_for_party(request.user, ride_id)
    return Response(serialize_ride_for(ride, request.user))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_ride(request, ride_id):
    """Cancel a ride (rider, or the assigned driver)"""
    serializer = RideCancelSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    result = ride_management.cancel_ride(request.user, ride_id, serializer.validated_data.get('reason', ''))
    return _result_response(result, request.user)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def rate_ride(request, ride_id):
    serializer = RideRateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    result = ride_management.rate_ride(
        request.user,
        ride_id,
        serializer.validated_data['rating'],
        serializer.validated_data.get('review', ''),
    )
    return _result_response(result, request.user)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def pay_ride(request, ride_id):
    """Confirm payment for a completed ride whose payment is pending"""
    serializer = RidePaymentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    result = ride_management.confirm_manual_payment(
        request.user,
        ride_id,
        serializer.validated_data['payment_method'],
        serializer.validated_data.get('payment_details'),
    )
    return _result_response(result, request.user)


# ==================== Driver Ride Actions ====================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def accept_ride(request, ride_id):
    result = ride_management.accept_ride(request.user, ride_id)
    return _result_response(result, request.user)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def start_ride(request, ride_id):
    """Start the ride with the OTP the rider reads out"""
    serializer = RideStartSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    result = ride_management.start_ride(request.user, ride_id, serializer.validated_data['otp'])
    return _result_response(result, request.user)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def end_ride(request, ride_id):
    serializer = RideEndSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    result = ride_management.end_ride(request.user, ride_id, serializer.validated_data['waiting_charges'])
    return _result_response(result, request.user)
