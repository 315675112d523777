"""
Authentication views: registration, JWT login/logout and own profile.
"""
from django.db import IntegrityError, transaction
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView

from apps.authz.models import User
from apps.authz.permissions import IsAuthenticatedUser
from apps.authz.serializers import (
    LoginSerializer,
    LogoutSerializer,
    ProfileSerializer,
    ProfileUpdateSerializer,
    RegisterSerializer,
)
from apps.core.audit import log_audit
from apps.core.models import AuditActionChoices
from apps.core.observability import get_sanitized_logger

logger = get_sanitized_logger(__name__)

REGISTER_MESSAGE = 'Registro recibido. Tu cuenta será revisada por un administrador.'


class RegisterThrottle(AnonRateThrottle):
    """Rate limit for self-registration, per IP."""
    scope = 'register'


class LoginThrottle(AnonRateThrottle):
    """Brute-force protection for login, per IP."""
    scope = 'login'


class RegisterView(APIView):
    """
    POST /api/auth/register/ - Public self-registration.

    The answer is identical whether or not the email was already taken, so
    the endpoint can not be used to discover accounts.
    """
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [RegisterThrottle]

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if User.objects.filter(email__iexact=data['email']).exists():
            logger.info('Registration for an existing email ignored', extra={'event': 'register_duplicate'})
            return Response({'message': REGISTER_MESSAGE}, status=status.HTTP_201_CREATED)

        try:
            with transaction.atomic():
                user = User.objects.create_user(
                    email=data['email'],
                    password=data['password'],
                    name=data['name'],
                    phone=data.get('phone', ''),
                    role=data['role'],
                    is_approved=False,
                )
        except IntegrityError:
            # Lost a race against a concurrent registration of the same email
            return Response({'message': REGISTER_MESSAGE}, status=status.HTTP_201_CREATED)

        log_audit(
            AuditActionChoices.REGISTER,
            'User',
            user.id,
            user=user,
            metadata={'role': user.role},
            request=request,
        )
        return Response({'message': REGISTER_MESSAGE}, status=status.HTTP_201_CREATED)


class LoginView(TokenObtainPairView):
    """
    POST /api/auth/token/ - JWT login.

    Returns access/refresh tokens plus a user summary. Unapproved and
    inactive accounts get 401.
    """
    serializer_class = LoginSerializer
    throttle_classes = [LoginThrottle]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
        except TokenError as e:
            raise InvalidToken(e.args[0])

        log_audit(
            AuditActionChoices.LOGIN,
            'User',
            serializer.user.id,
            user=serializer.user,
            request=request,
        )
        return Response(serializer.validated_data, status=status.HTTP_200_OK)


class LogoutView(APIView):
    """POST /api/auth/logout/ - Blacklist the refresh token."""
    permission_classes = [IsAuthenticatedUser]

    def post(self, request):
        serializer = LogoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            RefreshToken(serializer.validated_data['refresh']).blacklist()
        except TokenError:
            return Response(
                {'error': 'Token inválido o expirado'},
                status=status.HTTP_400_BAD_REQUEST
            )

        log_audit(AuditActionChoices.LOGOUT, 'User', request.user.id, user=request.user, request=request)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ProfileView(APIView):
    """
    GET /api/user/profile/ - Own profile.
    PATCH /api/user/profile/ - Update name/phone, or change the password
    (current_password + new_password).
    """
    permission_classes = [IsAuthenticatedUser]

    def get(self, request):
        return Response(ProfileSerializer(request.user).data)

    def patch(self, request):
        serializer = ProfileUpdateSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()

        changed = sorted(
            'password' if field == 'new_password' else field
            for field in serializer.validated_data
            if field != 'current_password'
        )
        log_audit(
            AuditActionChoices.UPDATE,
            'User',
            user.id,
            user=user,
            metadata={'changed_fields': changed},
            request=request,
        )
        return Response(ProfileSerializer(user).data)
