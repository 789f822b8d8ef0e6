import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import AllowAny, IsAuthenticated
from marketplace.core.exceptions import ServiceError
from marketplace.orders.serializers import OrderSerializer
from .serializers import (
    CartSerializer, CartItemSerializer, AddToCartSerializer, UpdateCartItemSerializer, CheckoutSerializer,
)
from . import services

logger = logging.getLogger('marketplace.cart')

SESSION_HEADER = 'X-Session-Id'


def _session_id(request):
    return request.headers.get(SESSION_HEADER) or request.query_params.get('session_id')


def _current_cart(request):
    user = request.user if request.user.is_authenticated else None
    return services.get_or_create_cart(user=user, session_id=_session_id(request))


@api_view(['GET'])
@permission_classes([AllowAny])
def cart_detail(request):
    """Active cart of the user or guest session, with its pricing summary"""
    try:
        cart = _current_cart(request)
    except ServiceError as e:
        return e.to_response()
    return Response(CartSerializer(cart).data)


@api_view(['POST'])
@permission_classes([AllowAny])
def cart_add_item(request):
    serializer = AddToCartSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        cart = _current_cart(request)
        item = services.add_item(cart, serializer.validated_data['variant_id'], serializer.validated_data['quantity'])
    except ServiceError as e:
        return e.to_response()
    return Response(CartItemSerializer(item).data, status=status.HTTP_201_CREATED)


@api_view(['PATCH', 'PUT', 'DELETE'])
@permission_classes([AllowAny])
def cart_item_detail(request, pk):
    """Change a line's quantity (0 removes it) or delete the line"""
    try:
        cart = _current_cart(request)
        if request.method == 'DELETE':
            services.remove_item(cart, pk)
            return Response(status=status.HTTP_204_NO_CONTENT)

        serializer = UpdateCartItemSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        item = services.update_item(cart, pk, serializer.validated_data['quantity'])
    except ServiceError as e:
        return e.to_response()

    if item is None:
        return Response(status=status.HTTP_204_NO_CONTENT)
    return Response(CartItemSerializer(item).data)


@api_view(['POST', 'DELETE'])
@permission_classes([AllowAny])
def cart_clear(request):
    try:
        cart = _current_cart(request)
        services.clear_cart(cart)
    except ServiceError as e:
        return e.to_response()
    return Response(CartSerializer(cart).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cart_merge(request):
    """Merge the guest cart named by the session header into the signed-in user's cart"""
    session_id = _session_id(request) or request.data.get('session_id')
    if not session_id:
        return Response({'error': f'{SESSION_HEADER} header is required'}, status=status.HTTP_400_BAD_REQUEST)
    cart = services.merge_guest_cart(session_id, request.user)
    return Response(CartSerializer(cart).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cart_checkout(request):
    serializer = CheckoutSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        cart = services.get_or_create_cart(user=request.user)
        order = services.checkout(cart, request.user, **serializer.validated_data)
    except ServiceError as e:
        logger.warning(f"Checkout by {request.user.username} failed: {e.message}")
        return e.to_response()
    return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)
