from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/catalog/', include('products.urls')),
    path('api/discounts/', include('discounts.urls')),
    path('api/orders/', include('orders.urls')),
]
