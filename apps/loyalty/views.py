from rest_framework import generics
from rest_framework.response import Response

from apps.common.permissions import RolePermission
from apps.loyalty.serializers import LoyaltySettingsSerializer, LoyaltySettingsUpdateSerializer
from apps.loyalty.services import get_settings, save_settings


class LoyaltySettingsView(generics.GenericAPIView):
    serializer_class = LoyaltySettingsSerializer
    permission_classes = [RolePermission]
    capability_map = {
        "get": ["loyalty.view"],
        "put": ["loyalty.manage"],
    }

    def get(self, request, *args, **kwargs):
        return Response(LoyaltySettingsSerializer(get_settings()).data)

    def put(self, request, *args, **kwargs):
        payload = LoyaltySettingsUpdateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        saved = save_settings(payload.validated_data, actor=request.user)
        return Response(LoyaltySettingsSerializer(saved).data)
