from django.contrib import admin

from products.models import Category, Patch, Product


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'category_type', 'display_order', 'is_active']
    list_filter = ['category_type', 'is_active']
    search_fields = ['name', 'slug']
    prepopulated_fields = {'slug': ('name',)}


@admin.register(Patch)
class PatchAdmin(admin.ModelAdmin):
    list_display = ['title', 'patch_type', 'price', 'sort_order', 'is_active']
    list_filter = ['patch_type', 'is_active']
    search_fields = ['title']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['title', 'category', 'base_price', 'retro_price', 'stock_quantity', 'is_retro', 'is_active']
    list_filter = ['category', 'is_retro', 'is_active']
    search_fields = ['title']
    filter_horizontal = ['patches']
