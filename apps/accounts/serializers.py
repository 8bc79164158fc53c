from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User, UserRole
from .services import capabilities_for, staffed_band_ids


class UserSerializer(serializers.ModelSerializer):
    """
    Signed-in account with what its role allows.

    ``bands`` lists the bands a merchant owns or belongs to (owned first)
    so the booth app can open straight into the right catalog.
    """

    capabilities = serializers.SerializerMethodField()
    bands = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id',
            'email',
            'display_name',
            'role',
            'capabilities',
            'bands',
            'created_at',
            'last_login',
        ]
        read_only_fields = ['id', 'email', 'role', 'created_at', 'last_login']

    def get_capabilities(self, obj) -> list:
        return sorted(capabilities_for(obj))

    def get_bands(self, obj) -> list:
        return staffed_band_ids(obj)


class UserRegistrationSerializer(serializers.Serializer):
    """Validate registration input."""

    email = serializers.EmailField()
    password = serializers.CharField(
        write_only=True,
        validators=[validate_password],
        style={'input_type': 'password'}
    )
    password_confirm = serializers.CharField(
        write_only=True,
        style={'input_type': 'password'}
    )
    display_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    # Every role is accepted here; the registration service decides which
    # ones are open to sign-up
    role = serializers.ChoiceField(choices=UserRole.choices, default=UserRole.FAN)

    def validate(self, attrs):
        """Validate password confirmation."""
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({
                'password_confirm': 'Passwords do not match'
            })
        return attrs


class UserLoginSerializer(serializers.Serializer):
    """Serializer for user login."""

    email = serializers.EmailField(required=True)
    password = serializers.CharField(
        required=True,
        write_only=True,
        style={'input_type': 'password'}
    )


class PasswordResetRequestSerializer(serializers.Serializer):
    """Serializer for password reset request."""

    email = serializers.EmailField(required=True)


class PasswordResetConfirmSerializer(serializers.Serializer):
    """Serializer for password reset confirmation."""

    token = serializers.CharField(required=True)
    new_password = serializers.CharField(
        required=True,
        validators=[validate_password],
        style={'input_type': 'password'}
    )
    new_password_confirm = serializers.CharField(
        required=True,
        style={'input_type': 'password'}
    )

    def validate(self, attrs):
        """Validate password confirmation."""
        if attrs['new_password'] != attrs['new_password_confirm']:
            raise serializers.ValidationError({
                'new_password_confirm': 'Passwords do not match'
            })
        return attrs


class UserPublicSerializer(serializers.ModelSerializer):
    """Public user info (band members, order owners)."""

    class Meta:
        model = User
        fields = ['id', 'display_name']
