from rest_framework import status, serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.tokens import RefreshToken
from drf_spectacular.utils import extend_schema
from django.conf import settings
from .models import UserRole
from .serializers import (
    UserRegistrationSerializer,
    UserLoginSerializer,
    UserSerializer,
    PasswordResetRequestSerializer,
    PasswordResetConfirmSerializer,
)
from .services import (
    register_user,
    authenticate_user,
    request_password_reset as request_password_reset_service,
    confirm_password_reset as confirm_password_reset_service,
    EmailTakenError,
    RoleNotAllowedError,
    InvalidCredentialsError,
    InactiveAccountError,
    RoleMismatchError,
    InvalidTokenError,
    UserNotFoundError,
)


# Response serializers for API documentation
class TokensResponseSerializer(serializers.Serializer):
    refresh = serializers.CharField()
    access = serializers.CharField()


class AuthResponseSerializer(serializers.Serializer):
    message = serializers.CharField()
    user = UserSerializer()
    tokens = TokensResponseSerializer()


class MessageResponseSerializer(serializers.Serializer):
    message = serializers.CharField()


class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()
    code = serializers.CharField()


def _error_response(exc, status_code, **extra):
    return Response({'error': str(exc), 'code': exc.code, **extra}, status=status_code)


def _auth_response(user, message, status_code=status.HTTP_200_OK):
    refresh = RefreshToken.for_user(user)
    # Lets clients pick the fan or merchant app without decoding the user
    refresh['role'] = user.role
    return Response({
        'message': message,
        'user': UserSerializer(user).data,
        'tokens': {
            'refresh': str(refresh),
            'access': str(refresh.access_token),
        }
    }, status=status_code)


@extend_schema(
    request=UserRegistrationSerializer,
    responses={
        201: AuthResponseSerializer,
        400: ErrorResponseSerializer,
        403: ErrorResponseSerializer,
    },
    description="Register a fan or merchant account and receive JWT tokens. Admin accounts are appointed, not registered.",
    tags=['auth'],
)
@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """Register a new fan or merchant account."""
    serializer = UserRegistrationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    data = serializer.validated_data.copy()
    data.pop('password_confirm', None)

    try:
        user = register_user(**data)
    except RoleNotAllowedError as e:
        return _error_response(e, status.HTTP_403_FORBIDDEN)
    except EmailTakenError as e:
        return _error_response(e, status.HTTP_400_BAD_REQUEST)

    return _auth_response(user, 'Registration successful', status.HTTP_201_CREATED)


def _sign_in(request, role=None):
    serializer = UserLoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        user = authenticate_user(role=role, **serializer.validated_data)
    except InvalidCredentialsError as e:
        return _error_response(e, status.HTTP_401_UNAUTHORIZED)
    except InactiveAccountError as e:
        return _error_response(e, status.HTTP_403_FORBIDDEN)
    except RoleMismatchError as e:
        return _error_response(e, status.HTTP_403_FORBIDDEN, role=e.user.role)

    return _auth_response(user, f'Signed in as {user.get_role_display().lower()}')


@extend_schema(
    request=UserLoginSerializer,
    responses={
        200: AuthResponseSerializer,
        401: ErrorResponseSerializer,
        403: ErrorResponseSerializer,
    },
    description="Sign in with any account and receive JWT tokens.",
    tags=['auth'],
)
@api_view(['POST'])
@permission_classes([AllowAny])
def login(request):
    """Sign in with email and password."""
    return _sign_in(request)


@extend_schema(
    request=UserLoginSerializer,
    responses={
        200: AuthResponseSerializer,
        401: ErrorResponseSerializer,
        403: ErrorResponseSerializer,
    },
    description="Sign in at the merchant booth. Fan accounts are refused with code role_mismatch.",
    tags=['auth'],
)
@api_view(['POST'])
@permission_classes([AllowAny])
def merchant_login(request):
    """Sign in with a merchant (or admin) account."""
    return _sign_in(request, role=UserRole.MERCHANT)


@extend_schema(
    responses={200: UserSerializer},
    description="The signed-in account, its capabilities and the bands it staffs.",
    tags=['auth'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_current_user(request):
    return Response(UserSerializer(request.user).data)


@extend_schema(
    request=PasswordResetRequestSerializer,
    responses={200: MessageResponseSerializer},
    description="Request a password reset. Always returns success so account existence is not revealed.",
    tags=['auth'],
)
@api_view(['POST'])
@permission_classes([AllowAny])
def request_password_reset(request):
    """Request a password reset token."""
    serializer = PasswordResetRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    payload = {'message': 'If account exists, password reset instructions have been sent'}
    try:
        token = request_password_reset_service(email=serializer.validated_data['email'])
    except UserNotFoundError:
        return Response(payload)

    if settings.DEBUG:
        payload['token'] = token
    return Response(payload)


@extend_schema(
    request=PasswordResetConfirmSerializer,
    responses={
        200: MessageResponseSerializer,
        400: ErrorResponseSerializer,
    },
    description="Confirm password reset with token and set new password.",
    tags=['auth'],
)
@api_view(['POST'])
@permission_classes([AllowAny])
def confirm_password_reset(request):
    """Confirm password reset with token."""
    serializer = PasswordResetConfirmSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        confirm_password_reset_service(
            token=serializer.validated_data['token'],
            new_password=serializer.validated_data['new_password'],
        )
    except InvalidTokenError as e:
        return _error_response(e, status.HTTP_400_BAD_REQUEST)

    return Response({'message': 'Password reset successful'})
