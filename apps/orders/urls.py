from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'orders'

router = DefaultRouter()
router.register(r'', views.OrderViewSet, basename='order')

urlpatterns = [
    # Order ViewSet routes
    # GET    /api/orders/                 - List own orders (?status=)
    # GET    /api/orders/{id}/            - Get order details
    # POST   /api/orders/{id}/cancel/     - Cancel a pending order
    # GET    /api/orders/{id}/qr_code/    - Pickup QR code (PNG)
    # POST   /api/orders/checkout/        - Pay and place an order
    # POST   /api/orders/pickup/          - Redeem a scanned pickup code

    # Merchant endpoints (must be registered BEFORE the router)
    path('merchant/<uuid:band_id>/', views.merchant_orders, name='merchant-orders'),
    path('merchant/<uuid:band_id>/summary/', views.merchant_summary, name='merchant-summary'),
    path(
        'merchant/<uuid:band_id>/<uuid:order_id>/status/',
        views.merchant_update_status,
        name='merchant-update-status'
    ),

    # Include router URLs
    path('', include(router.urls)),
]
