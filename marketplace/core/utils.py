"""Request helpers, audit logging and pagination"""
import logging

from django.core.paginator import Paginator, EmptyPage

from .models import AuditLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (stock_adjust, order_create, org_approve, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object
        object_reference: Reference identifier (e.g., order reference)

    Never raises; failures are logged.
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or not object_id:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            object_reference=object_reference,
            changes=changes or {},
            ip_address=ip_address
        )
    except Exception as e:
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def parse_int(value, default):
    """Parse a query parameter as int, falling back to default"""
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def paginate_queryset(queryset, page=1, limit=10, serializer_class=None, context=None):
    """
    Slice a queryset into a page.

    Returns {'results': [...], 'meta': {current_page, total_pages, total_items,
    items_per_page, has_next, has_prev}}. Out-of-range pages return an empty
    result list with the real totals.
    """
    page = max(parse_int(page, 1), 1)
    limit = max(parse_int(limit, 10), 1)

    paginator = Paginator(queryset, limit)
    try:
        page_obj = paginator.page(page)
        items = list(page_obj.object_list)
    except EmptyPage:
        items = []

    if serializer_class is not None:
        results = serializer_class(items, many=True, context=context or {}).data
    else:
        results = items

    total_pages = paginator.num_pages if paginator.count else 0
    return {
        'results': results,
        'meta': {
            'current_page': page,
            'total_pages': total_pages,
            'total_items': paginator.count,
            'items_per_page': limit,
            'has_next': page < total_pages,
            'has_prev': page > 1,
        },
    }
