from django.urls import path, include
from rest_framework.routers import DefaultRouter

from discounts.views import (
    DiscountRuleViewSet,
    AppliedDiscountViewSet,
    CouponViewSet,
    DiscountRuleLookupView,
    DiscountEvaluateView,
    CartDiscountCheckView,
    CouponValidateView,
)

router = DefaultRouter()
router.register(r'rules', DiscountRuleViewSet, basename='discount-rule')
router.register(r'applied', AppliedDiscountViewSet, basename='applied-discount')
router.register(r'coupons', CouponViewSet, basename='coupon')

urlpatterns = [
    path('lookup/', DiscountRuleLookupView.as_view(), name='discount-rule-lookup'),
    path('evaluate/', DiscountEvaluateView.as_view(), name='discount-evaluate'),
    path('check-cart/', CartDiscountCheckView.as_view(), name='discount-check-cart'),
    path('coupons/validate/', CouponValidateView.as_view(), name='coupon-validate'),
    path('', include(router.urls)),
]
