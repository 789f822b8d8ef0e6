"""
Organization lifecycle: registration, membership, and the approval state
machine (pending_approval -> active | rejected, active <-> suspended).
"""
import logging

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from marketplace.core.exceptions import BadRequestError, ConflictError, NotFoundError
from .models import Organization, OrganizationType, OrganizationUser, OrganizationSettings

logger = logging.getLogger(__name__)

DEFAULT_MEMBER_ROLE = 'organization_owner'
DEFAULT_STAFF_ROLE = 'organization_staff'


def get_organization(organization_id):
    try:
        return Organization.objects.select_related('organization_type').get(pk=organization_id)
    except Organization.DoesNotExist:
        raise NotFoundError(f"Organization with ID {organization_id} not found")


def get_owner(organization):
    """First active member of the organization, or None"""
    membership = (
        organization.members.filter(is_active=True)
        .select_related('user')
        .order_by('created_at', 'id')
        .first()
    )
    return membership.user if membership else None


def create_organization(user, data, attributes=None, role=None):
    """
    Register an organization for ``user``.

    The organization, its settings, the creator's membership and any
    attributes are written in one transaction.
    """
    from marketplace.attributes.services import set_attributes
    from marketplace.rbac.services import get_role_by_name

    data = dict(data)
    if Organization.objects.filter(slug=data['slug']).exists():
        raise ConflictError('Organization with this slug already exists')
    if Organization.objects.filter(email=data['email']).exists():
        raise ConflictError('Organization with this email already exists')

    type_code = data.pop('organization_type')
    try:
        organization_type = OrganizationType.objects.get(code=type_code, is_active=True)
    except OrganizationType.DoesNotExist:
        raise NotFoundError(f"Organization type '{type_code}' not found")

    if role is None:
        role = get_role_by_name(DEFAULT_MEMBER_ROLE)

    initial_status = 'pending_approval' if organization_type.requires_approval else 'active'

    with transaction.atomic():
        organization = Organization.objects.create(
            organization_type=organization_type,
            status=initial_status,
            **data,
        )
        OrganizationSettings.objects.create(
            organization=organization,
            notification_email=organization.email,
        )
        OrganizationUser.objects.create(
            user=user,
            organization=organization,
            role=role,
            joined_at=timezone.now(),
        )
        if attributes:
            set_attributes(organization.pk, attributes)

    logger.info(f"Organization '{organization.slug}' created by user {user.pk} with status {initial_status}")
    return organization


def update_organization(organization_id, data):
    organization = get_organization(organization_id)
    for field, value in data.items():
        setattr(organization, field, value)
    organization.save()
    return organization


def list_organizations(status=None, organization_type=None, search=None):
    organizations = Organization.objects.select_related('organization_type')
    if status:
        organizations = organizations.filter(status=status)
    if organization_type:
        organizations = organizations.filter(organization_type__code=organization_type)
    if search:
        organizations = organizations.filter(Q(name__icontains=search) | Q(slug__icontains=search))
    return organizations


def add_member(organization, user, role, invited_by=None):
    """Attach an existing user to the organization with ``role``"""
    if OrganizationUser.objects.filter(organization=organization, user=user).exists():
        raise ConflictError(f"User {user.pk} is already a member of this organization")
    membership = OrganizationUser.objects.create(
        organization=organization,
        user=user,
        role=role,
        invited_by=invited_by,
        joined_at=timezone.now(),
    )
    logger.info(f"User {user.pk} added to organization {organization.pk} as {role.name}")
    return membership


def is_member(user, organization_id):
    return OrganizationUser.objects.filter(
        user=user, organization_id=organization_id, is_active=True
    ).exists()


# Approval state machine

def _require_status(organization, expected, message):
    if organization.status != expected:
        raise BadRequestError(f"{message}. Current status: {organization.status}")


def approve_organization(organization_id, admin, fee_type=None, fee_amount=None):
    organization = get_organization(organization_id)
    _require_status(organization, 'pending_approval', 'Organization is not pending approval')

    organization.status = 'active'
    organization.is_active = True
    organization.approved_at = timezone.now()
    organization.approved_by = admin
    if fee_type is not None:
        organization.fee_type = fee_type
    if fee_amount is not None:
        organization.fee_amount = fee_amount
    organization.save()

    logger.info(f"Organization {organization.pk} approved by user {admin.pk}")
    _notify_owner(
        organization,
        event='organization.approved',
        title=f'Your organization "{organization.name}" has been approved!',
        message='Congratulations! Your organization is now active and you can start using the platform.',
        data={'approved': True},
    )
    return organization


def reject_organization(organization_id, admin, reason):
    organization = get_organization(organization_id)
    _require_status(organization, 'pending_approval', 'Organization is not pending approval')

    organization.status = 'rejected'
    organization.rejected_at = timezone.now()
    organization.rejection_reason = reason
    organization.save()

    logger.info(f"Organization {organization.pk} rejected by user {admin.pk}: {reason}")
    _notify_owner(
        organization,
        event='organization.rejected',
        title=f'Your organization "{organization.name}" application was not approved',
        message=f'Reason: {reason}',
        data={'approved': False, 'reason': reason},
    )
    return organization


def suspend_organization(organization_id, admin, reason):
    organization = get_organization(organization_id)
    _require_status(organization, 'active', 'Only active organizations can be suspended')

    organization.status = 'suspended'
    organization.is_active = False
    organization.rejection_reason = reason
    organization.save()

    logger.warning(f"Organization {organization.pk} suspended by user {admin.pk}: {reason}")
    _notify_owner(
        organization,
        event='organization.suspended',
        title=f'Your organization "{organization.name}" has been suspended',
        message=f'Reason: {reason}. Please contact support for more information.',
        data={'reason': reason},
    )
    return organization


def reactivate_organization(organization_id, admin):
    organization = get_organization(organization_id)
    _require_status(organization, 'suspended', 'Only suspended organizations can be reactivated')

    organization.status = 'active'
    organization.is_active = True
    organization.rejection_reason = None
    organization.save()

    logger.info(f"Organization {organization.pk} reactivated by user {admin.pk}")
    _notify_owner(
        organization,
        event='organization.reactivated',
        title=f'Your organization "{organization.name}" has been reactivated!',
        message='Your organization is now active again. Welcome back!',
    )
    return organization


def approval_stats():
    counts = Organization.objects.aggregate(
        pending=Count('id', filter=Q(status='pending_approval')),
        approved=Count('id', filter=Q(status='active')),
        rejected=Count('id', filter=Q(status='rejected')),
        suspended=Count('id', filter=Q(status='suspended')),
    )
    counts['total'] = sum(counts.values())
    return counts


def _notify_owner(organization, event, title, message, data=None):
    """Tell the owner about a status change; failures are logged only"""
    from marketplace.notifications.services import send_notification

    try:
        owner = get_owner(organization)
        if owner is None:
            logger.warning(f"Organization {organization.pk} has no active member to notify about {event}")
            return
        payload = {'organization_id': organization.pk, 'organization_name': organization.name}
        payload.update(data or {})
        send_notification(
            user_ids=[owner.pk],
            event=event,
            channels=['email', 'in_app'],
            title=title,
            message=message,
            data=payload,
        )
    except Exception as e:
        logger.error(f"Failed to send {event} notification for organization {organization.pk}: {str(e)}", exc_info=True)
