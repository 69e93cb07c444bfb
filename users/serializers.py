from django.contrib.auth import get_user_model
from rest_framework import serializers

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    u_id = serializers.UUIDField(source='id', read_only=True)
    password = serializers.CharField(write_only=True, required=False)

    class Meta:
        model = User
        fields = ['u_id', 'username', 'email', 'first_name', 'last_name', 'role', 'is_active', 'date_joined', 'password']
        read_only_fields = ['u_id', 'date_joined']


class ProfileSerializer(UserSerializer):
    class Meta(UserSerializer.Meta):
        # staff may edit their own name, never their role
        read_only_fields = ['u_id', 'username', 'role', 'is_active', 'date_joined']
