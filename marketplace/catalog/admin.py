from django.contrib import admin
from .models import Category, Product, ProductVariant, ProductImage, ProductOption, OptionValue, Wishlist, WishlistItem


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'parent', 'fee_type', 'fee_amount', 'is_active', 'created_at']
    list_filter = ['is_active', 'fee_type', 'created_at']
    search_fields = ['name', 'slug', 'description']
    prepopulated_fields = {'slug': ('name',)}
    ordering = ['name']


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 1


class ProductImageInline(admin.TabularInline):
    model = ProductImage
    extra = 0


class ProductOptionInline(admin.TabularInline):
    model = ProductOption
    extra = 0


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'organization', 'category', 'fee_type', 'fee_amount', 'is_active', 'deleted_at', 'created_at']
    list_filter = ['is_active', 'category', 'organization', 'created_at']
    search_fields = ['name', 'description', 'variants__sku']
    ordering = ['-created_at']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [ProductVariantInline, ProductOptionInline, ProductImageInline]


@admin.register(ProductVariant)
class ProductVariantAdmin(admin.ModelAdmin):
    list_display = ['sku', 'product', 'name', 'price', 'currency', 'is_active']
    list_filter = ['is_active', 'currency']
    search_fields = ['sku', 'name', 'product__name', 'barcode']


class OptionValueInline(admin.TabularInline):
    model = OptionValue
    extra = 1


@admin.register(ProductOption)
class ProductOptionAdmin(admin.ModelAdmin):
    list_display = ['name', 'product', 'position']
    search_fields = ['name', 'product__name']
    inlines = [OptionValueInline]


class WishlistItemInline(admin.TabularInline):
    model = WishlistItem
    extra = 0
    raw_id_fields = ['variant']


@admin.register(Wishlist)
class WishlistAdmin(admin.ModelAdmin):
    list_display = ['user', 'created_at']
    search_fields = ['user__username', 'user__email']
    inlines = [WishlistItemInline]
