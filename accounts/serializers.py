from rest_framework import serializers
from django.contrib.auth import get_user_model

User = get_user_model()


class PublicUserSerializer(serializers.ModelSerializer):
    """Fields anyone may see about another user; never the email."""

    class Meta:
        model = User
        fields = ["id", "username", "avatar", "location", "date_joined"]
        read_only_fields = fields


class MeSerializer(serializers.ModelSerializer):
    """The signed-in user's own profile."""

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "avatar",
            "location",
            "wishlist",
            "role",
            "status",
            "date_joined",
        ]
        read_only_fields = fields


class AdminUserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["id", "username", "email", "role", "status", "date_joined"]
        read_only_fields = fields
