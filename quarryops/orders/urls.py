from django.urls import path
from .views import (
    sales_order_list_create, sales_order_detail,
    purchase_order_list_create, purchase_order_detail,
)

urlpatterns = [
    # Sales order endpoints
    path('sales-orders/', sales_order_list_create, name='sales-order-list-create'),
    path('sales-orders/<int:pk>/', sales_order_detail, name='sales-order-detail'),

    # Purchase order endpoints
    path('purchase-orders/', purchase_order_list_create, name='purchase-order-list-create'),
    path('purchase-orders/<int:pk>/', purchase_order_detail, name='purchase-order-detail'),
]
