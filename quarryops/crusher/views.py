import logging

from django.db.models import ProtectedError
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from quarryops.core.exceptions import ValidationError, get_or_not_found
from quarryops.core.utils import filter_queryset_or_reject
from . import ledger
from .filters import CrusherRunFilter, DispatchFilter
from .models import CrusherMachine, CrusherRun, CrusherSite, Dispatch
from .serializers import (
    CrusherMachineSerializer, CrusherRunSerializer, CrusherSiteSerializer, DispatchSerializer,
    DispatchWriteSerializer,
)

logger = logging.getLogger(__name__)


# Machine views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def machine_list_create(request):
    """List all crusher machines or register a new one"""
    if request.method == 'GET':
        queryset = CrusherMachine.objects.all()
        machine_status = request.query_params.get('status')
        if machine_status:
            queryset = queryset.filter(status=machine_status.upper())
        return Response(CrusherMachineSerializer(queryset, many=True).data)
    else:
        serializer = CrusherMachineSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def machine_detail(request, pk):
    """Retrieve, update (including status) or delete a crusher machine"""
    machine = get_or_not_found(CrusherMachine, pk, 'Crusher machine')

    if request.method == 'GET':
        return Response(CrusherMachineSerializer(machine).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CrusherMachineSerializer(machine, data=request.data, partial=request.method == 'PATCH')
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)
    else:  # DELETE
        try:
            machine.delete()
        except ProtectedError:
            raise ValidationError('Crusher machine has runs and cannot be deleted')
        return Response(status=status.HTTP_204_NO_CONTENT)


# Site views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def site_list_create(request):
    """List crusher sites with their materials or create a new site"""
    if request.method == 'GET':
        queryset = CrusherSite.objects.prefetch_related('materials')
        material_id = request.query_params.get('materialId')
        if material_id:
            if not material_id.isdigit():
                raise ValidationError('Invalid filter parameters', details={'materialId': ['Enter a whole number.']})
            queryset = queryset.filter(materials__id=material_id)
        return Response(CrusherSiteSerializer(queryset, many=True).data)
    else:
        serializer = CrusherSiteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        site = serializer.save()
        logger.info(f"Crusher site {site.id} created: {site.name} with {site.materials.count()} materials")
        return Response(CrusherSiteSerializer(site).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def site_detail(request, pk):
    """Retrieve, update or delete a crusher site. ``materialIds`` replaces the site's materials."""
    site = get_or_not_found(CrusherSite.objects.prefetch_related('materials'), pk, 'Crusher site')

    if request.method == 'GET':
        return Response(CrusherSiteSerializer(site).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CrusherSiteSerializer(site, data=request.data, partial=request.method == 'PATCH')
        serializer.is_valid(raise_exception=True)
        site = serializer.save()
        return Response(CrusherSiteSerializer(site).data)
    else:  # DELETE
        site.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Run views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def run_list_create(request):
    """List crusher runs (filterable) or create a new run"""
    if request.method == 'GET':
        queryset = CrusherRun.objects.select_related('material', 'machine')
        queryset = filter_queryset_or_reject(CrusherRunFilter, request, queryset)
        return Response(CrusherRunSerializer(queryset, many=True).data)
    else:
        serializer = CrusherRunSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        run = ledger.create_run(serializer.validated_data, request=request)
        return Response(CrusherRunSerializer(run).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def run_detail(request, pk):
    """Retrieve, update or delete a crusher run"""
    run = get_or_not_found(CrusherRun.objects.select_related('material', 'machine'), pk, 'Crusher run')

    if request.method == 'GET':
        return Response(CrusherRunSerializer(run).data)
    elif request.method in ('PUT', 'PATCH'):
        # PUT and PATCH both accept any subset of fields
        serializer = CrusherRunSerializer(run, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        run = ledger.update_run(run.pk, serializer.validated_data, request=request)
        return Response(CrusherRunSerializer(run).data)
    else:  # DELETE
        ledger.delete_run(run.pk, request=request)
        return Response(status=status.HTTP_204_NO_CONTENT)


# Dispatch views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def dispatch_list_create(request):
    """List dispatches (filterable) or record a new dispatch against a run"""
    if request.method == 'GET':
        queryset = Dispatch.objects.with_relations()
        queryset = filter_queryset_or_reject(DispatchFilter, request, queryset)
        return Response(DispatchSerializer(queryset, many=True).data)
    else:
        serializer = DispatchWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        dispatch = ledger.create_dispatch(
            data.pop('crusher_run_id'), data.pop('quantity'), request=request, **data
        )
        return Response(DispatchSerializer(dispatch).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def dispatch_detail(request, pk):
    """Retrieve, partially update or delete a dispatch"""
    if request.method == 'GET':
        return Response(DispatchSerializer(ledger.get_dispatch(pk)).data)
    elif request.method == 'PATCH':
        serializer = DispatchWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        dispatch = ledger.update_dispatch(pk, serializer.validated_data, request=request)
        return Response(DispatchSerializer(dispatch).data)
    else:  # DELETE
        ledger.delete_dispatch(pk, request=request)
        return Response(status=status.HTTP_204_NO_CONTENT)
