from django.urls import path
from .views import (
    category_list_create, category_detail,
    product_list_create, product_detail, product_variants,
    product_variant_detail,
    product_images, product_image_detail, product_image_set_main, product_images_reorder,
    product_options, product_option_detail, option_values, option_values_reorder, option_value_detail,
    wishlist_detail, wishlist_count, wishlist_add, wishlist_remove,
)

urlpatterns = [
    # Category endpoints
    path('categories/', category_list_create, name='category-list-create'),
    path('categories/<int:pk>/', category_detail, name='category-detail'),

    # Product endpoints
    path('products/', product_list_create, name='product-list-create'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('products/<int:pk>/variants/', product_variants, name='product-variants'),
    path('products/<int:pk>/images/', product_images, name='product-images'),
    path('products/<int:pk>/images/reorder/', product_images_reorder, name='product-images-reorder'),
    path('products/<int:pk>/images/<int:image_id>/', product_image_detail, name='product-image-detail'),
    path('products/<int:pk>/images/<int:image_id>/main/', product_image_set_main, name='product-image-main'),
    path('products/<int:pk>/options/', product_options, name='product-options'),

    # Variant endpoints
    path('variants/<int:pk>/', product_variant_detail, name='product-variant-detail'),

    # Option endpoints
    path('options/<int:pk>/', product_option_detail, name='product-option-detail'),
    path('options/<int:pk>/values/', option_values, name='option-values'),
    path('options/<int:pk>/values/reorder/', option_values_reorder, name='option-values-reorder'),
    path('option-values/<int:pk>/', option_value_detail, name='option-value-detail'),

    # Wishlist endpoints
    path('wishlist/', wishlist_detail, name='wishlist-detail'),
    path('wishlist/count/', wishlist_count, name='wishlist-count'),
    path('wishlist/items/', wishlist_add, name='wishlist-add'),
    path('wishlist/items/<int:pk>/', wishlist_remove, name='wishlist-remove'),
]
