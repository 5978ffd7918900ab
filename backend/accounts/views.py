from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from services.exceptions import ServiceValidationError, UnauthorizedError
from .serializers import RegisterSerializer, LoginSerializer, UserSerializer


def issue_tokens(user):
    refresh = RefreshToken.for_user(user)
    return {
        'refresh': str(refresh),
        'access': str(refresh.access_token),
    }


class RegisterView(APIView):
    """
    Register a rider or a driver.

    Riders get an empty wallet; drivers get an inactive profile for the
    vehicle they register with.

    POST Body:
    {
        "username": "asha",
        "password": "secret123",
        "role": "user",               // or "driver"
        "phone_number": "9000000000",
        "vehicle_number": "KA-01-1234",  // drivers only
        "vehicle_class": "auto"          // car, moto or auto; drivers only
    }
    """
    permission_classes = (AllowAny,)
    authentication_classes = []

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()

        return Response({
            'message': 'Registered',
            'user': UserSerializer(user).data,
            'tokens': issue_tokens(user),
        }, status=status.HTTP_201_CREATED)


class LoginView(APIView):
    permission_classes = (AllowAny,)
    authentication_classes = []

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data

        return Response({
            'message': 'Logged in',
            'user': UserSerializer(user).data,
            'tokens': issue_tokens(user),
        })


class RefreshTokenView(APIView):
    """Exchange a refresh token for a new access token."""
    permission_classes = (AllowAny,)
    authentication_classes = []

    def post(self, request):
        refresh_token = request.data.get('refresh')
        if not refresh_token:
            raise ServiceValidationError('Refresh token is required', details={'field': 'refresh'})

        try:
            refresh = RefreshToken(refresh_token)
        except TokenError as exc:
            raise UnauthorizedError('Refresh token is invalid or expired') from exc

        return Response({'access': str(refresh.access_token)})
