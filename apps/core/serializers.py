"""
Serializers for authentication, profiles, stores, staff and announcements.
"""

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password

from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import Announcement, Store, StoreStaff

User = get_user_model()


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    JWT token serializer that adds profile claims and the user's stores.
    """

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)

        token["username"] = user.username
        token["email"] = user.email
        token["account_type"] = user.account_type

        return token

    def validate(self, attrs):
        data = super().validate(attrs)

        data["user"] = {
            "id": str(self.user.id),
            "username": self.user.username,
            "email": self.user.email,
            "display_name": self.user.display_name,
            "account_type": self.user.account_type,
            "stores": [
                {"store_id": str(m.store_id), "role": m.role}
                for m in self.user.store_memberships.filter(is_active=True)
            ],
        }
        return data


class UserSerializer(serializers.ModelSerializer):
    """
    Serializer for the user profile.
    """

    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "first_name",
            "last_name",
            "display_name",
            "phone",
            "national_id",
            "address",
            "date_of_birth",
            "account_type",
            "date_joined",
        ]
        read_only_fields = ["id", "username", "account_type", "date_joined"]


class UserSummarySerializer(serializers.ModelSerializer):
    """Public part of a profile shown to other users (e.g., transfer recipients)."""

    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ["id", "display_name", "email", "phone"]


class UserRegistrationSerializer(serializers.ModelSerializer):
    """
    Serializer for user registration.
    """

    password = serializers.CharField(write_only=True, required=True, validators=[validate_password])
    password2 = serializers.CharField(write_only=True, required=True)

    class Meta:
        model = User
        fields = [
            "username",
            "email",
            "password",
            "password2",
            "first_name",
            "last_name",
            "phone",
        ]

    def validate(self, attrs):
        if attrs["password"] != attrs["password2"]:
            raise serializers.ValidationError({"password": "Password fields didn't match."})
        return attrs

    def create(self, validated_data):
        validated_data.pop("password2")
        return User.objects.create_user(**validated_data)


class StoreSerializer(serializers.ModelSerializer):
    class Meta:
        model = Store
        fields = [
            "id",
            "name",
            "city",
            "address",
            "phone",
            "map_url",
            "branch_code",
            "working_hours",
            "is_active",
        ]
        read_only_fields = ["id"]


class StoreStaffSerializer(serializers.ModelSerializer):
    """Serializer for store staff memberships."""

    user = UserSummarySerializer(read_only=True)
    store_name = serializers.CharField(source="store.name", read_only=True)

    class Meta:
        model = StoreStaff
        fields = [
            "id",
            "store",
            "store_name",
            "user",
            "role",
            "permissions",
            "is_active",
            "created_at",
        ]
        read_only_fields = fields


class StaffCreateSerializer(serializers.Serializer):
    """Add a staff member by email or phone."""

    identifier = serializers.CharField(help_text="Email or phone of the user")
    role = serializers.ChoiceField(choices=StoreStaff.ROLE_CHOICES, default=StoreStaff.CLERK)
    permissions = serializers.JSONField(required=False, default=dict)


class StaffUpdateSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=StoreStaff.ROLE_CHOICES, required=False)
    permissions = serializers.JSONField(required=False)
    is_active = serializers.BooleanField(required=False)


class AnnouncementSerializer(serializers.ModelSerializer):
    class Meta:
        model = Announcement
        fields = [
            "id",
            "store",
            "title",
            "body",
            "visible_from",
            "visible_to",
            "is_active",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "store", "created_by", "created_at", "updated_at"]

    def validate(self, data):
        visible_from = data.get("visible_from", getattr(self.instance, "visible_from", None))
        visible_to = data.get("visible_to", getattr(self.instance, "visible_to", None))
        if visible_from and visible_to and visible_to < visible_from:
            raise serializers.ValidationError(
                {"visible_to": "End of visibility must be after its start."}
            )
        return data
