from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'catalog'

router = DefaultRouter()
router.register(r'bands', views.BandViewSet, basename='band')
router.register(r'products', views.ProductViewSet, basename='product')
router.register(r'events', views.EventViewSet, basename='event')

urlpatterns = [
    # Bands
    # GET    /api/catalog/bands/                       - List bands
    # POST   /api/catalog/bands/                       - Create band (merchants)
    # GET    /api/catalog/bands/{id}/events/           - Band events, newest first
    # POST   /api/catalog/bands/{id}/members/          - Add member (owner)
    # DELETE /api/catalog/bands/{id}/members/          - Remove member (owner)

    # Products
    # GET    /api/catalog/products/?band=&event=       - List products
    # POST   /api/catalog/products/                    - Create product
    # PATCH  /api/catalog/products/{id}/               - Update product
    # PUT    /api/catalog/products/{id}/inventory/     - Replace stock counts
    # DELETE /api/catalog/products/{id}/               - Delete product

    # Events
    # GET    /api/catalog/events/                      - List events
    # GET    /api/catalog/events/nearby/               - Events around a point
    # GET    /api/catalog/events/{id}/products/        - Products at an event
    # POST   /api/catalog/events/{id}/link_product/    - Link product
    # POST   /api/catalog/events/{id}/unlink_product/  - Unlink product
    # POST   /api/catalog/events/archive_expired/      - Archive ended events

    path('', include(router.urls)),
]
