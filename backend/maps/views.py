"""
Map lookups for the rider app: geocoding, route distance/time and address
autocomplete. All three go through the shared routing service so they hit
the same cache and provider throttle as fare estimation.
"""

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from services.routing import get_routing_service
from .serializers import AddressQuerySerializer, RouteQuerySerializer, SuggestionQuerySerializer


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def coordinates(request):
    serializer = AddressQuerySerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)

    point = get_routing_service().geocode(serializer.validated_data['address'])
    return Response({'lat': point.lat, 'lng': point.lng})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def distance_time(request):
    serializer = RouteQuerySerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)

    route = get_routing_service().get_distance_time(
        serializer.validated_data['origin'],
        serializer.validated_data['destination'],
    )
    return Response({
        'distance_km': route.distance_km,
        'duration_min': route.duration_min,
        **route.as_display(),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def suggestions(request):
    """Provider failures come back as an empty list, never an error."""
    serializer = SuggestionQuerySerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)

    results = get_routing_service().suggestions(serializer.validated_data['input'])
    return Response({'suggestions': results})
