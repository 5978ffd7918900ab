from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from drivers.models import DriverProfile
from drivers.serializers import (
    DriverProfileSerializer,
    DriverStatusSerializer,
    LocationUpdateSerializer,
    DriverStatsSerializer,
    DriverVehicleSerializer,
)
from rides.models import Ride
from rides.serializers import RideSerializer
from services.ride_management import registry

from drivers import services

# Utility: Ensure request.user is a driver
def require_driver(user):
    if user.role != "driver":
        return False, Response({"error": "PermissionDenied", "message": "Only drivers allowed"}, status=403)
    try:
        profile = user.driver_profile
        return True, profile
    except DriverProfile.DoesNotExist:
        return False, Response({"error": "NotFound", "message": "Driver profile not found"}, status=404)


class DriverProfileView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile  # Response object

        services.refresh_earnings_window(profile)
        serializer = DriverProfileSerializer(profile, context={"request": request})
        return Response(serializer.data)

    def post(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        vehicle = DriverVehicleSerializer(profile, data=request.data, partial=True)
        vehicle.is_valid(raise_exception=True)
        vehicle.save()

        serializer = DriverProfileSerializer(profile, context={"request": request})
        return Response(serializer.data, status=200)


#    WS set-status does the same; HTTP fallback remains.
class DriverStatusView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        return Response({"status": profile.status})

    def put(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        serializer = DriverStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data["status"]

        services.update_driver_status(profile, new_status)

        return Response({
            "message": f"Status updated to {new_status}",
            "status": new_status
        })


#    WS update-location does the same; HTTP fallback remains.
class DriverLocationUpdateView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        return Response({
            "latitude": float(profile.current_latitude) if profile.current_latitude is not None else None,
            "longitude": float(profile.current_longitude) if profile.current_longitude is not None else None,
            "last_updated": profile.last_location_update,
            "status": profile.status,
        })

    def post(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        serializer = LocationUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        lat = serializer.validated_data["latitude"]
        lon = serializer.validated_data["longitude"]

        services.update_driver_location(profile, lat, lon)

        return Response({
            "message": "Location updated",
            "latitude": float(lat),
            "longitude": float(lon),
            "status": profile.status
        })


class DriverStatsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        stats = services.get_driver_stats(request.user)
        return Response(DriverStatsSerializer(stats).data)


class DriverEarningsView(APIView):
    """Driver wallet: earnings counters plus recent completed rides."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        return Response(services.get_driver_earnings_summary(request.user))


class DriverCurrentRideView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        ride = Ride.objects.filter(
            driver=request.user, status__in=[Ride.ACCEPTED, Ride.ONGOING]
        ).select_related("rider", "driver__driver_profile").first()
        if not ride:
            return Response({"error": "NotFound", "message": "No active ride"}, status=404)

        serializer = RideSerializer(ride, context={"request": request})
        return Response(serializer.data)


class DriverRideHistoryView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        history = registry.list_by_party(
            request.user,
            status=request.query_params.get("status") or None,
            date_range=request.query_params.get("date_range", registry.DEFAULT_DATE_RANGE),
        )
        serializer = RideSerializer(history, many=True, context={"request": request})

        return Response({"count": len(history), "rides": serializer.data})
