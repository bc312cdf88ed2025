from rest_framework.routers import DefaultRouter

from products.views import CategoryViewSet, PatchViewSet, ProductViewSet

router = DefaultRouter()
router.register(r'categories', CategoryViewSet, basename='category')
router.register(r'patches', PatchViewSet, basename='patch')
router.register(r'products', ProductViewSet, basename='product')

urlpatterns = router.urls
