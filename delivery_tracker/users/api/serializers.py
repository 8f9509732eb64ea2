from rest_framework import serializers

from delivery_tracker.users.models import User


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["id", "username", "name", "email", "role"]
        read_only_fields = ["id", "username", "role"]


class DriverSerializer(serializers.ModelSerializer):
    online = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "name", "email", "online"]

    def get_online(self, obj: User) -> bool:
        online_ids = self.context.get("online_ids") or set()
        return obj.id in online_ids
