from rest_framework import serializers

from drivers.models import VehicleClass
from drivers.serializers import DriverBasicSerializer
from services.payments import PaymentMethod
from .models import Ride


class RiderBasicSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    name = serializers.CharField(source="display_name", read_only=True)
    phone_number = serializers.CharField(read_only=True)


class RideSerializer(serializers.ModelSerializer):
    """Serializer for rides. The OTP is only ever shown to the rider."""
    rider = RiderBasicSerializer(read_only=True)
    driver = DriverBasicSerializer(read_only=True, source='driver.driver_profile', default=None)

    class Meta:
        model = Ride
        fields = ['id', 'rider', 'driver', 'pickup', 'destination', 'pickup_latitude',
                  'pickup_longitude', 'vehicle_class', 'fare', 'waiting_charges', 'total_fare',
                  'distance', 'duration', 'status', 'payment_status', 'payment_method',
                  'payment_id', 'wallet_linked', 'created_at', 'accepted_at', 'started_at',
                  'ended_at', 'cancelled_at', 'cancellation_reason', 'rating', 'review']
        read_only_fields = fields


class RiderRideSerializer(RideSerializer):
    class Meta(RideSerializer.Meta):
        fields = RideSerializer.Meta.fields + ['otp']
        read_only_fields = fields


def serialize_ride_for(ride, user, **kwargs):
    serializer_class = RiderRideSerializer if ride.rider_id == user.id else RideSerializer
    return serializer_class(ride, **kwargs).data


class RideCreateSerializer(serializers.Serializer):
    """Serializer for creating rides"""
    pickup = serializers.CharField(max_length=255)
    destination = serializers.CharField(max_length=255)
    vehicle_type = serializers.ChoiceField(choices=VehicleClass.choices)
    wallet_linked = serializers.BooleanField(default=False, required=False)
    pickup_latitude = serializers.FloatField(required=False, min_value=-90, max_value=90)
    pickup_longitude = serializers.FloatField(required=False, min_value=-180, max_value=180)

    def validate(self, data):
        has_lat = 'pickup_latitude' in data
        has_lng = 'pickup_longitude' in data
        if has_lat != has_lng:
            raise serializers.ValidationError("Send both pickup_latitude and pickup_longitude")
        return data


class FareQuerySerializer(serializers.Serializer):
    pickup = serializers.CharField(max_length=255)
    destination = serializers.CharField(max_length=255)


class RideStartSerializer(serializers.Serializer):
    otp = serializers.CharField(max_length=10)


class RideEndSerializer(serializers.Serializer):
    waiting_charges = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, default=0)


class RideCancelSerializer(serializers.Serializer):
    """Serializer for ride cancellation"""
    reason = serializers.CharField(required=False, allow_blank=True)


class RideRateSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5)
    review = serializers.CharField(required=False, allow_blank=True)


class RidePaymentSerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)
    payment_details = serializers.DictField(required=False, default=dict)


class RideListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Ride.STATUS_CHOICES, required=False)
    date_range = serializers.CharField(required=False)
