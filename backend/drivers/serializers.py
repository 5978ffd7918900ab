from rest_framework import serializers
from drivers.models import DriverProfile
from accounts.serializers import UserSerializer


class DriverProfileSerializer(serializers.ModelSerializer):
    """
    Full driver profile serializer
    """
    user = UserSerializer(read_only=True)

    class Meta:
        model = DriverProfile
        fields = [
            "id",
            "user",
            "vehicle_number",
            "vehicle_color",
            "vehicle_capacity",
            "vehicle_class",
            "status",
            "current_latitude",
            "current_longitude",
            "last_location_update",
            "today_earnings",
            "trips_today",
            "weekly_earnings",
            "weekly_trips",
            "total_trips",
            "rating",
            "avg_ride_time",
            "online_hours",
        ]
        read_only_fields = fields


class DriverBasicSerializer(serializers.ModelSerializer):
    """
    Lite version of driver info for ride details
    (sent to riders once a ride is accepted).
    """
    name = serializers.CharField(source="user.display_name", read_only=True)
    phone_number = serializers.CharField(source="user.phone_number", read_only=True)

    class Meta:
        model = DriverProfile
        fields = [
            "id",
            "name",
            "phone_number",
            "vehicle_number",
            "vehicle_color",
            "vehicle_class",
            "rating",
        ]


class DriverStatusSerializer(serializers.Serializer):
    """
    Serializer for updating driver availability (active/inactive).
    """
    status = serializers.ChoiceField(choices=DriverProfile.STATUS_CHOICES)


class LocationUpdateSerializer(serializers.Serializer):
    """
    Serializer for updating driver GPS location.
    """
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, min_value=-90, max_value=90)
    longitude = serializers.DecimalField(max_digits=10, decimal_places=6, min_value=-180, max_value=180)


class DriverStatsSerializer(serializers.Serializer):
    today_earnings = serializers.DecimalField(max_digits=12, decimal_places=2)
    trips_today = serializers.IntegerField()
    weekly_earnings = serializers.DecimalField(max_digits=12, decimal_places=2)
    weekly_trips = serializers.IntegerField()
    total_trips = serializers.IntegerField()
    rating = serializers.DecimalField(max_digits=2, decimal_places=1)
    avg_ride_time = serializers.IntegerField()
    online_hours = serializers.IntegerField()


class DriverVehicleSerializer(serializers.ModelSerializer):
    """Editable vehicle details. Plate and class are fixed at registration."""

    class Meta:
        model = DriverProfile
        fields = ["vehicle_color", "vehicle_capacity"]
        extra_kwargs = {"vehicle_capacity": {"min_value": 1}}
