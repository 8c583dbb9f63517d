import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import ProtectedError
from quarryops.core.exceptions import ValidationError, get_or_not_found
from .models import Material
from .serializers import MaterialSerializer

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def material_list_create(request):
    """List all materials or create a new material"""
    if request.method == 'GET':
        queryset = Material.objects.all()
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(name__icontains=search)
        serializer = MaterialSerializer(queryset, many=True)
        return Response(serializer.data)
    else:
        serializer = MaterialSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        material = serializer.save()
        logger.info(f"User {request.user.username} created material {material.name}")
        return Response(serializer.data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def material_detail(request, pk):
    """Retrieve, update or delete a material"""
    material = get_or_not_found(Material, pk, 'Material')

    if request.method == 'GET':
        serializer = MaterialSerializer(material)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = MaterialSerializer(material, data=request.data, partial=request.method == 'PATCH')
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)
    else:  # DELETE
        try:
            material.delete()
        except ProtectedError:
            raise ValidationError('Material is used by crusher runs or orders and cannot be deleted')
        return Response(status=status.HTTP_204_NO_CONTENT)
