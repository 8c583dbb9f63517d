from rest_framework import serializers
from .models import Customer, Vendor


class CustomerSerializer(serializers.ModelSerializer):
    gstNo = serializers.CharField(source='gst_no', required=False, allow_blank=True, max_length=20)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Customer
        fields = [
            'id', 'name', 'address', 'gstNo', 'contact', 'city', 'state', 'pincode',
            'createdAt', 'updatedAt'
        ]


class VendorSerializer(serializers.ModelSerializer):
    gstNo = serializers.CharField(source='gst_no', required=False, allow_blank=True, max_length=20)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Vendor
        fields = ['id', 'name', 'address', 'gstNo', 'contact', 'createdAt', 'updatedAt']
