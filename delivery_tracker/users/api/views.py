from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.generics import ListAPIView
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from delivery_tracker.realtime.presence import online_ids
from delivery_tracker.users.models import User

from .permissions import IsManagerOrAbove
from .serializers import DriverSerializer
from .serializers import UserSerializer


class UserViewSet(GenericViewSet):
    """Only the caller's own profile is exposed; accounts are managed in the admin."""

    serializer_class = UserSerializer
    queryset = User.objects.none()

    @extend_schema(tags=["Users"])
    @action(detail=False)
    def me(self, request):
        serializer = UserSerializer(request.user, context={"request": request})
        return Response(status=status.HTTP_200_OK, data=serializer.data)


@extend_schema(tags=["Users"])
class DriverListView(ListAPIView):
    """Drivers with a live ``online`` flag from the presence heartbeat."""

    serializer_class = DriverSerializer
    permission_classes = [IsManagerOrAbove]
    pagination_class = None

    def get_queryset(self):
        return User.objects.filter(role=User.Role.DRIVER, is_active=True).order_by(
            "name",
            "username",
        )

    def list(self, request, *args, **kwargs):
        drivers = list(self.get_queryset())
        context = self.get_serializer_context()
        context["online_ids"] = online_ids(d.id for d in drivers)
        serializer = DriverSerializer(drivers, many=True, context=context)
        return Response(serializer.data)
