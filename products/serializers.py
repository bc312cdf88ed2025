"""
Serializers for Products app models.
"""
from rest_framework import serializers

from products.models import Category, Patch, Product


class CategorySerializer(serializers.ModelSerializer):

    class Meta:
        model = Category
        fields = ['id', 'name', 'slug', 'category_type', 'description', 'display_order', 'is_active']
        read_only_fields = ['id']


class PatchSerializer(serializers.ModelSerializer):

    class Meta:
        model = Patch
        fields = ['id', 'title', 'description', 'patch_type', 'price', 'sort_order', 'is_active']
        read_only_fields = ['id']


class ProductListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for the shop grid."""
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    price = serializers.DecimalField(source='unit_price', max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'title', 'category', 'category_name', 'price', 'is_retro', 'is_active']


class ProductSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    patches = serializers.PrimaryKeyRelatedField(
        many=True, required=False, queryset=Patch.active_objects.all()
    )
    available_patches = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            'id', 'title', 'description', 'category', 'category_name',
            'base_price', 'retro_price', 'shipping_price', 'stock_quantity',
            'is_retro', 'patches', 'available_patches',
            'is_active', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def get_available_patches(self, obj):
        """Active patches a customer can pick for this jersey."""
        patches = [patch for patch in obj.patches.all() if patch.is_active]
        return PatchSerializer(patches, many=True).data
