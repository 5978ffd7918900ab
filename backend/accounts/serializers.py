from rest_framework import serializers
from django.contrib.auth import authenticate
from django.db import transaction
from .models import User
from drivers.models import DriverProfile, VehicleClass
from wallets.models import Wallet


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "first_name",
            "last_name",
            "role",
            "phone_number",
            "total_rides",
            "total_spent",
        ]
        read_only_fields = ["id", "role", "total_rides", "total_spent"]


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, data):
        user = authenticate(username=data["username"], password=data["password"])
        if not user:
            raise serializers.ValidationError("Invalid username or password")
        return user


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=6)
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES)
    vehicle_number = serializers.CharField(required=False, max_length=20)
    vehicle_color = serializers.CharField(required=False, allow_blank=True, max_length=30)
    vehicle_capacity = serializers.IntegerField(required=False, min_value=1, default=1)
    vehicle_class = serializers.ChoiceField(choices=VehicleClass.choices, required=False)

    class Meta:
        model = User
        fields = [
            'username', 'password', 'email', 'first_name', 'last_name', 'role', 'phone_number',
            'vehicle_number', 'vehicle_color', 'vehicle_capacity', 'vehicle_class',
        ]

    def validate_email(self, value):
        if value and User.objects.filter(email=value).exists():
            raise serializers.ValidationError("Email already exists")
        return value

    def validate_vehicle_number(self, value):
        if DriverProfile.objects.filter(vehicle_number=value).exists():
            raise serializers.ValidationError("Vehicle number already registered")
        return value

    def validate(self, data):
        # Drivers need a plate and a vehicle class
        if data['role'] == 'driver':
            errors = {}
            if not data.get('vehicle_number'):
                errors['vehicle_number'] = 'Vehicle number is required for drivers'
            if not data.get('vehicle_class'):
                errors['vehicle_class'] = 'Vehicle type is required for drivers'
            if errors:
                raise serializers.ValidationError(errors)
        return data

    @transaction.atomic
    def create(self, validated_data):
        vehicle = {
            key: validated_data.pop(key)
            for key in ('vehicle_number', 'vehicle_color', 'vehicle_capacity', 'vehicle_class')
            if key in validated_data
        }

        user = User.objects.create_user(
            username=validated_data['username'],
            email=validated_data.get('email', ''),
            password=validated_data['password'],
            role=validated_data['role'],
            phone_number=validated_data.get('phone_number', ''),
            first_name=validated_data.get('first_name', ''),
            last_name=validated_data.get('last_name', ''),
        )

        if user.role == 'driver':
            DriverProfile.objects.create(user=user, **vehicle)
        else:
            Wallet.objects.create(user=user)

        return user
