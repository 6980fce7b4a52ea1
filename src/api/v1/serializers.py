"""Serializers for users, auth and the audit trail (API v1)."""
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from accounts.permissions import get_permissions
from accounts.validators import get_password_strength
from core.models import AuditLog

User = get_user_model()


def _run_password_validators(value, user=None):
    try:
        validate_password(value, user=user)
    except DjangoValidationError as exc:
        raise serializers.ValidationError(list(exc.messages))
    return value


# ---------------------------------------------------------------------------
# User Serializers
# ---------------------------------------------------------------------------

class UserSerializer(serializers.ModelSerializer):
    """Read serializer used by the admin user list."""

    display_name = serializers.CharField(read_only=True)
    manager_name = serializers.CharField(source='manager.display_name', read_only=True, default=None)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'first_name', 'last_name', 'display_name',
            'phone', 'role', 'department', 'employment_status',
            'manager', 'manager_name', 'is_active', 'date_joined',
        ]
        read_only_fields = [
            'id', 'email', 'role', 'employment_status', 'manager',
            'is_active', 'date_joined',
        ]


class SignupSerializer(serializers.ModelSerializer):
    """Self-service signup; the account waits in ``pending`` until an admin approves it."""

    password = serializers.CharField(write_only=True)
    password_confirm = serializers.CharField(write_only=True)

    class Meta:
        model = User
        fields = ['id', 'email', 'first_name', 'last_name', 'phone', 'password', 'password_confirm']
        read_only_fields = ['id']

    def validate_password(self, value):
        return _run_password_validators(value)

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({'password_confirm': 'The two passwords do not match.'})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        return User.objects.create_user(
            password=password,
            employment_status=User.EmploymentStatus.PENDING,
            **validated_data,
        )


class MeSerializer(serializers.ModelSerializer):
    """The signed-in user's own profile, including the permission keys their role grants."""

    display_name = serializers.CharField(read_only=True)
    permissions = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'email', 'first_name', 'last_name', 'display_name',
            'phone', 'role', 'department', 'employment_status', 'manager',
            'is_active', 'is_superuser', 'permissions',
        ]
        read_only_fields = [
            'id', 'email', 'role', 'department', 'employment_status',
            'manager', 'is_active', 'is_superuser',
        ]

    def get_permissions(self, obj):
        return get_permissions(obj.role)


class PortalTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Adds the user profile to the token response."""

    def validate(self, attrs):
        data = super().validate(attrs)
        data['user'] = MeSerializer(self.user).data
        return data


class ChangePasswordSerializer(serializers.Serializer):
    old_password = serializers.CharField(required=True, write_only=True)
    new_password = serializers.CharField(required=True, write_only=True)

    def validate_old_password(self, value):
        user = self.context['request'].user
        if not user.check_password(value):
            raise serializers.ValidationError('Current password is incorrect.')
        return value

    def validate_new_password(self, value):
        return _run_password_validators(value, user=self.context['request'].user)


class PasswordStrengthSerializer(serializers.Serializer):
    password = serializers.CharField(write_only=True, trim_whitespace=False)

    def to_representation(self, instance):
        strength = get_password_strength(instance['password'])
        return {
            'score': strength.score,
            'label': strength.label,
            'requirements': strength.requirements,
        }


# ---------------------------------------------------------------------------
# User administration inputs
# ---------------------------------------------------------------------------

class ApproveUserSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=User.Role.choices, required=False)
    department = serializers.ChoiceField(choices=User.Department.choices, required=False)


class RejectUserSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class AssignRoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=User.Role.choices)
    department = serializers.ChoiceField(choices=User.Department.choices, required=False, allow_blank=True)


class AssignManagerSerializer(serializers.Serializer):
    manager = serializers.PrimaryKeyRelatedField(queryset=User.objects.all(), allow_null=True)


# ---------------------------------------------------------------------------
# Audit Log Serializer
# ---------------------------------------------------------------------------

class AuditLogSerializer(serializers.ModelSerializer):
    """Read-only serializer for AuditLog model."""

    actor_name = serializers.SerializerMethodField()

    class Meta:
        model = AuditLog
        fields = [
            'id', 'actor', 'actor_name', 'action',
            'entity_type', 'entity_id', 'before_json', 'after_json',
            'ip_address', 'created_at',
        ]
        read_only_fields = fields

    def get_actor_name(self, obj):
        if obj.actor:
            return obj.actor.display_name
        return None
