from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework_simplejwt.exceptions import AuthenticationFailed
from django.core.paginator import Paginator
from .exceptions import ValidationError
from .models import AuditLog
from .serializers import UserSerializer, AuditLogSerializer


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['groups'] = list(user.groups.values_list('name', flat=True))
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshView(TokenRefreshView):
    pass


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get current user with groups"""
    user_data = UserSerializer(request.user).data
    user_data['groups'] = list(request.user.groups.values_list('name', flat=True))
    return Response(user_data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def audit_log_list(request):
    """List audit log entries, newest first"""
    queryset = AuditLog.objects.select_related('user')

    action = request.query_params.get('action')
    model_name = request.query_params.get('model_name')
    object_id = request.query_params.get('object_id')
    if action:
        queryset = queryset.filter(action=action)
    if model_name:
        queryset = queryset.filter(model_name=model_name)
    if object_id:
        queryset = queryset.filter(object_id=object_id)

    try:
        page = int(request.query_params.get('page', 1))
        limit = int(request.query_params.get('limit', 50))
    except ValueError:
        raise ValidationError('Invalid pagination parameters', details={'page': ['page and limit must be integers']})
    if limit < 1:
        raise ValidationError('Invalid pagination parameters', details={'limit': ['limit must be at least 1']})
    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)

    return Response({
        'results': AuditLogSerializer(page_obj, many=True).data,
        'count': paginator.count,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    })
