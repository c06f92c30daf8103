"""
Authz views: registration and current user.
"""
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz.identity import CallerMixin
from apps.authz.serializers import RegisterSerializer, UserSerializer
from apps.authz.services import register_user


class RegisterView(APIView):
    """
    POST /api/v1/auth/register/

    Creates a patient, clinic_manager or clinic_doctor account. Tokens are
    obtained separately from /api/auth/token/.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = register_user(**serializer.validated_data)

        return Response(
            {'id': str(user.id), 'email': user.email, 'role': user.role},
            status=status.HTTP_201_CREATED
        )


class MeView(CallerMixin, APIView):
    """GET /api/v1/auth/me/"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        serializer = UserSerializer(request.user, context={'caller': self.caller})
        return Response(serializer.data)
