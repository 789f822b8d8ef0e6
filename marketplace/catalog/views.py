import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAuthenticatedOrReadOnly
from django.shortcuts import get_object_or_404
from django.utils import timezone
from marketplace.core.exceptions import ServiceError
from marketplace.core.utils import paginate_queryset
from marketplace.organizations.services import is_member
from marketplace.rbac.permissions import is_platform_admin
from .filters import ProductFilter
from .models import Category, Product, ProductVariant
from .serializers import (
    CategorySerializer, ProductSerializer, ProductVariantSerializer, ProductImageSerializer,
    ProductOptionSerializer, OptionValueSerializer, ReorderSerializer, WishlistItemSerializer,
    WishlistAddSerializer,
)
from . import services, wishlist

logger = logging.getLogger('marketplace.catalog')


def _can_manage_organization(user, organization_id):
    return is_platform_admin(user) or is_member(user, organization_id)


# Category views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticatedOrReadOnly])
def category_list_create(request):
    """List active categories or create a new category (admins only)"""
    if request.method == 'GET':
        categories = Category.objects.select_related('parent')
        if request.query_params.get('include_inactive') != 'true':
            categories = categories.filter(is_active=True)
        parent = request.query_params.get('parent')
        if parent == 'root':
            categories = categories.filter(parent__isnull=True)
        elif parent:
            categories = categories.filter(parent_id=parent)
        return Response(CategorySerializer(categories, many=True).data)

    if not is_platform_admin(request.user):
        return Response({'error': 'Only administrators can create categories'}, status=status.HTTP_403_FORBIDDEN)
    serializer = CategorySerializer(data=request.data)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticatedOrReadOnly])
def category_detail(request, pk):
    """Retrieve, update or delete a category"""
    category = get_object_or_404(Category, pk=pk)

    if request.method == 'GET':
        return Response(CategorySerializer(category).data)

    if not is_platform_admin(request.user):
        return Response({'error': 'Only administrators can modify categories'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = CategorySerializer(category, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    category.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticatedOrReadOnly])
def product_list_create(request):
    """List products with filters (paginated) or create a product for an organization"""
    if request.method == 'GET':
        products = Product.available.select_related('organization', 'category').prefetch_related('variants')
        if request.query_params.get('active') is None:
            products = products.filter(is_active=True)
        filterset = ProductFilter(request.query_params, queryset=products)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        return Response(paginate_queryset(
            filterset.qs,
            page=request.query_params.get('page', 1),
            limit=request.query_params.get('limit', 20),
            serializer_class=ProductSerializer,
        ))

    serializer = ProductSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    organization = serializer.validated_data['organization']
    if not _can_manage_organization(request.user, organization.pk):
        return Response({'error': 'You are not a member of this organization'}, status=status.HTTP_403_FORBIDDEN)
    if organization.status != 'active':
        return Response({'error': 'Organization must be active to list products'}, status=status.HTTP_400_BAD_REQUEST)
    product = serializer.save()
    logger.info(f"User {request.user.username} created product {product.pk} for organization {organization.pk}")
    return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticatedOrReadOnly])
def product_detail(request, pk):
    """Retrieve, update or soft-delete a product"""
    product = get_object_or_404(Product.available.select_related('organization', 'category'), pk=pk)

    if request.method == 'GET':
        return Response(ProductSerializer(product).data)

    if not _can_manage_organization(request.user, product.organization_id):
        return Response({'error': 'You are not a member of this organization'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        data = request.data.copy()
        data.pop('organization_id', None)
        serializer = ProductSerializer(product, data=data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    product.deleted_at = timezone.now()
    product.is_active = False
    product.save(update_fields=['deleted_at', 'is_active', 'updated_at'])
    logger.info(f"User {request.user.username} deleted product {pk}")
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticatedOrReadOnly])
def product_variants(request, pk):
    """List variants of a product or add a variant"""
    product = get_object_or_404(Product.available, pk=pk)

    if request.method == 'GET':
        return Response(ProductVariantSerializer(product.variants.all(), many=True).data)

    if not _can_manage_organization(request.user, product.organization_id):
        return Response({'error': 'You are not a member of this organization'}, status=status.HTTP_403_FORBIDDEN)
    serializer = ProductVariantSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save(product=product)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticatedOrReadOnly])
def product_variant_detail(request, pk):
    """Retrieve, update or delete a product variant"""
    variant = get_object_or_404(ProductVariant.objects.select_related('product'), pk=pk)

    if request.method == 'GET':
        return Response(ProductVariantSerializer(variant).data)

    if not _can_manage_organization(request.user, variant.product.organization_id):
        return Response({'error': 'You are not a member of this organization'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = ProductVariantSerializer(variant, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    if variant.inventory_records.filter(reserved__gt=0).exists():
        return Response({'error': 'Cannot delete a variant with reserved inventory'}, status=status.HTTP_400_BAD_REQUEST)
    variant.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


def _forbidden():
    return Response({'error': 'You are not a member of this organization'}, status=status.HTTP_403_FORBIDDEN)


# Product image views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticatedOrReadOnly])
def product_images(request, pk):
    """Images of a product (main image first) or add an image"""
    try:
        product = services.get_product(pk)
    except ServiceError as e:
        return e.to_response()

    if request.method == 'GET':
        return Response(ProductImageSerializer(product.images.all(), many=True).data)

    if not _can_manage_organization(request.user, product.organization_id):
        return _forbidden()
    serializer = ProductImageSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    image = services.add_image(product.pk, **serializer.validated_data)
    return Response(ProductImageSerializer(image).data, status=status.HTTP_201_CREATED)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_image_detail(request, pk, image_id):
    try:
        product = services.get_product(pk)
        if not _can_manage_organization(request.user, product.organization_id):
            return _forbidden()
        if request.method == 'DELETE':
            services.delete_image(pk, image_id)
            return Response(status=status.HTTP_204_NO_CONTENT)

        serializer = ProductImageSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        image = services.update_image(pk, image_id, serializer.validated_data)
    except ServiceError as e:
        return e.to_response()
    return Response(ProductImageSerializer(image).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def product_image_set_main(request, pk, image_id):
    try:
        product = services.get_product(pk)
        if not _can_manage_organization(request.user, product.organization_id):
            return _forbidden()
        image = services.set_main_image(pk, image_id)
    except ServiceError as e:
        return e.to_response()
    return Response(ProductImageSerializer(image).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def product_images_reorder(request, pk):
    """Positions follow the order of ``ids``"""
    serializer = ReorderSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        product = services.get_product(pk)
        if not _can_manage_organization(request.user, product.organization_id):
            return _forbidden()
        images = services.reorder_images(pk, serializer.validated_data['ids'])
    except ServiceError as e:
        return e.to_response()
    return Response(ProductImageSerializer(images, many=True).data)


# Product option views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticatedOrReadOnly])
def product_options(request, pk):
    """Options of a product with their values, or add an option"""
    try:
        product = services.get_product(pk)
    except ServiceError as e:
        return e.to_response()

    if request.method == 'GET':
        return Response(ProductOptionSerializer(services.list_options(pk), many=True).data)

    if not _can_manage_organization(request.user, product.organization_id):
        return _forbidden()
    serializer = ProductOptionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        option = services.create_option(pk, serializer.validated_data['name'],
                                        serializer.validated_data.get('position'))
    except ServiceError as e:
        return e.to_response()
    return Response(ProductOptionSerializer(option).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticatedOrReadOnly])
def product_option_detail(request, pk):
    try:
        option = services.get_option(pk)
        if request.method == 'GET':
            return Response(ProductOptionSerializer(option).data)
        if not _can_manage_organization(request.user, option.product.organization_id):
            return _forbidden()
        if request.method == 'DELETE':
            services.delete_option(pk)
            return Response(status=status.HTTP_204_NO_CONTENT)

        serializer = ProductOptionSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        option = services.update_option(pk, serializer.validated_data)
    except ServiceError as e:
        return e.to_response()
    return Response(ProductOptionSerializer(services.get_option(option.pk)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def option_values(request, pk):
    """Add a value to an option"""
    serializer = OptionValueSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        option = services.get_option(pk)
        if not _can_manage_organization(request.user, option.product.organization_id):
            return _forbidden()
        value = services.add_option_value(pk, serializer.validated_data['value'],
                                          serializer.validated_data.get('position'))
    except ServiceError as e:
        return e.to_response()
    return Response(OptionValueSerializer(value).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def option_values_reorder(request, pk):
    serializer = ReorderSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        option = services.get_option(pk)
        if not _can_manage_organization(request.user, option.product.organization_id):
            return _forbidden()
        values = services.reorder_option_values(pk, serializer.validated_data['ids'])
    except ServiceError as e:
        return e.to_response()
    return Response(OptionValueSerializer(values, many=True).data)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def option_value_detail(request, pk):
    try:
        option_value = services.get_option_value(pk)
        if not _can_manage_organization(request.user, option_value.option.product.organization_id):
            return _forbidden()
        if request.method == 'DELETE':
            services.delete_option_value(pk)
            return Response(status=status.HTTP_204_NO_CONTENT)

        serializer = OptionValueSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        option_value = services.update_option_value(pk, serializer.validated_data)
    except ServiceError as e:
        return e.to_response()
    return Response(OptionValueSerializer(option_value).data)


# Wishlist views
@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def wishlist_detail(request):
    """Current user's wishlist, or clear it"""
    if request.method == 'DELETE':
        deleted = wishlist.clear(request.user)
        return Response({'success': True, 'deleted_count': deleted})

    items = wishlist.get_items(request.user)
    return Response({
        'items': WishlistItemSerializer(items, many=True).data,
        'count': len(items),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def wishlist_count(request):
    return Response({'count': wishlist.count_items(request.user)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def wishlist_add(request):
    """Save one variant (``variant_id``) or several (``variant_ids``)"""
    serializer = WishlistAddSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        if 'variant_ids' in data:
            items = wishlist.add_items(request.user, data['variant_ids'])
            return Response(WishlistItemSerializer(items, many=True).data, status=status.HTTP_201_CREATED)
        item = wishlist.add_item(request.user, data['variant_id'])
    except ServiceError as e:
        return e.to_response()
    return Response(WishlistItemSerializer(item).data, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def wishlist_remove(request, pk):
    try:
        wishlist.remove_item(request.user, pk)
    except ServiceError as e:
        return e.to_response()
    return Response(status=status.HTTP_204_NO_CONTENT)
