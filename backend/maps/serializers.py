from rest_framework import serializers


class AddressQuerySerializer(serializers.Serializer):
    address = serializers.CharField(max_length=255)


class RouteQuerySerializer(serializers.Serializer):
    origin = serializers.CharField(max_length=255)
    destination = serializers.CharField(max_length=255)


class SuggestionQuerySerializer(serializers.Serializer):
    input = serializers.CharField(max_length=255)
