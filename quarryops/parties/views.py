from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q, ProtectedError
from quarryops.core.exceptions import ValidationError, get_or_not_found
from .models import Customer, Vendor
from .serializers import CustomerSerializer, VendorSerializer


# Customer views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def customer_list_create(request):
    """List all customers or create a new customer"""
    if request.method == 'GET':
        queryset = Customer.objects.all()
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(contact__icontains=search))
        serializer = CustomerSerializer(queryset, many=True)
        return Response(serializer.data)
    else:
        serializer = CustomerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def customer_detail(request, pk):
    """Retrieve, update or delete a customer"""
    customer = get_or_not_found(Customer, pk, 'Customer')

    if request.method == 'GET':
        return Response(CustomerSerializer(customer).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CustomerSerializer(customer, data=request.data, partial=request.method == 'PATCH')
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)
    else:  # DELETE
        try:
            customer.delete()
        except ProtectedError:
            raise ValidationError('Customer has sales orders and cannot be deleted')
        return Response(status=status.HTTP_204_NO_CONTENT)


# Vendor views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def vendor_list_create(request):
    """List all vendors or create a new vendor"""
    if request.method == 'GET':
        queryset = Vendor.objects.all()
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(contact__icontains=search))
        serializer = VendorSerializer(queryset, many=True)
        return Response(serializer.data)
    else:
        serializer = VendorSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def vendor_detail(request, pk):
    """Retrieve, update or delete a vendor"""
    vendor = get_or_not_found(Vendor, pk, 'Vendor')

    if request.method == 'GET':
        return Response(VendorSerializer(vendor).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = VendorSerializer(vendor, data=request.data, partial=request.method == 'PATCH')
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)
    else:  # DELETE
        try:
            vendor.delete()
        except ProtectedError:
            raise ValidationError('Vendor has purchase orders and cannot be deleted')
        return Response(status=status.HTTP_204_NO_CONTENT)
