from django.db import models


class Customer(models.Model):
    """Customers buying material (sales orders)"""
    name = models.CharField(max_length=200)
    address = models.TextField(blank=True)
    gst_no = models.CharField(max_length=20, blank=True)
    contact = models.CharField(max_length=50, blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    pincode = models.CharField(max_length=10, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'customers'
        ordering = ['name']


class Vendor(models.Model):
    """Vendors supplying material (purchase orders)"""
    name = models.CharField(max_length=200)
    address = models.TextField(blank=True)
    gst_no = models.CharField(max_length=20, blank=True)
    contact = models.CharField(max_length=50, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'vendors'
        ordering = ['name']
