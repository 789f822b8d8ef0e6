"""
Multi-channel notification dispatch.

Each send stores one Notification per user and channel. Email goes out
through Django's mail backend; SMS and push have no transport yet and report
a failed result.
"""
import logging
from dataclasses import dataclass

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail
from django.template import Context, Template, TemplateSyntaxError
from django.utils import timezone

from marketplace.core.exceptions import BadRequestError, NotFoundError
from .models import CHANNEL_CHOICES, Notification, NotificationPreference, NotificationTemplate

logger = logging.getLogger(__name__)

User = get_user_model()

# Delivered even when the user has turned the event off
CRITICAL_EVENTS = (
    'user.otp.requested',
    'user.password.reset.requested',
)

CHANNELS = tuple(code for code, _ in CHANNEL_CHOICES)


@dataclass
class DispatchResult:
    channel: str
    success: bool
    notification_id: int = None
    error: str = None


def is_channel_enabled(user_id, event, channel):
    """Channels are on unless the user stored a disabled preference"""
    return not NotificationPreference.objects.filter(
        user_id=user_id, event=event, channel=channel, enabled=False
    ).exists()


def filter_by_preferences(user_ids, event, channel):
    if event in CRITICAL_EVENTS:
        return list(user_ids)
    disabled = set(
        NotificationPreference.objects.filter(
            user_id__in=user_ids, event=event, channel=channel, enabled=False
        ).values_list('user_id', flat=True)
    )
    return [user_id for user_id in user_ids if user_id not in disabled]


def render_content(event, channel, title, message, data=None):
    """Title and body from the active template for event/channel, else as given"""
    template = NotificationTemplate.objects.filter(event=event, channel=channel, is_active=True).first()
    if template is None:
        return title, message

    context = Context(data or {})
    try:
        body = Template(template.template).render(context)
        subject = Template(template.subject).render(context) if template.subject else title
    except TemplateSyntaxError as e:
        logger.error(f"Template {template.name} failed to render: {str(e)}")
        return title, message
    return subject, body


def _store(user_id, event, channel, title, message, data, status='pending'):
    return Notification.objects.create(
        user_id=user_id,
        event=event,
        channel=channel,
        title=title,
        message=message or '',
        data=data or {},
        status=status,
        sent_at=timezone.now() if status == 'sent' else None,
    )


def _send_email(user_id, event, title, message, data):
    notification = _store(user_id, event, 'email', title, message, data)
    email = User.objects.filter(pk=user_id).values_list('email', flat=True).first()
    if not email:
        notification.status = 'failed'
        notification.error = 'User has no email address'
        notification.save(update_fields=['status', 'error'])
        return DispatchResult('email', False, notification.pk, notification.error)

    try:
        send_mail(title, message or '', settings.DEFAULT_FROM_EMAIL, [email], fail_silently=False)
    except Exception as e:
        logger.error(f"Email notification {notification.pk} to user {user_id} failed: {str(e)}")
        notification.status = 'failed'
        notification.error = str(e)
        notification.save(update_fields=['status', 'error'])
        return DispatchResult('email', False, notification.pk, str(e))

    notification.status = 'sent'
    notification.sent_at = timezone.now()
    notification.save(update_fields=['status', 'sent_at'])
    return DispatchResult('email', True, notification.pk)


def _dispatch(user_id, event, channel, title, message, data):
    if channel in ('in_app', 'realtime'):
        notification = _store(user_id, event, channel, title, message, data, status='sent')
        return DispatchResult(channel, True, notification.pk)
    if channel == 'email':
        return _send_email(user_id, event, title, message, data)
    if channel == 'sms':
        return DispatchResult(channel, False, error='SMS channel not implemented')
    if channel == 'push':
        return DispatchResult(channel, False, error='Push channel not implemented')
    return DispatchResult(channel, False, error=f"Unsupported channel: {channel}")


def send_notification(user_ids, event, channels, title, message='', data=None):
    """
    Send ``event`` to every user on every channel.

    Returns one DispatchResult per delivered (user, channel) pair. Users who
    disabled the event on a channel are skipped unless the event is critical.
    """
    results = []
    for channel in channels:
        recipients = filter_by_preferences(user_ids, event, channel)
        skipped = len(user_ids) - len(recipients)
        if skipped:
            logger.debug(f"{skipped} user(s) opted out of {event} on {channel}")
        if not recipients:
            continue

        subject, body = render_content(event, channel, title, message, data)
        for user_id in recipients:
            result = _dispatch(user_id, event, channel, subject, body, data)
            if not result.success:
                logger.warning(f"Notification {event} to user {user_id} via {channel} failed: {result.error}")
            results.append(result)

    logger.info(f"Dispatched {event} to {len(user_ids)} user(s): "
                f"{sum(1 for r in results if r.success)}/{len(results)} delivered")
    return results


def list_notifications(user, unread_only=False, channel=None):
    notifications = Notification.objects.filter(user=user)
    if unread_only:
        notifications = notifications.filter(read_at__isnull=True)
    if channel:
        notifications = notifications.filter(channel=channel)
    return notifications


def mark_as_read(user, notification_id):
    try:
        notification = Notification.objects.get(pk=notification_id, user=user)
    except Notification.DoesNotExist:
        raise NotFoundError('Notification not found')
    if notification.read_at is None:
        notification.read_at = timezone.now()
        notification.save(update_fields=['read_at'])
    return notification


def mark_all_as_read(user):
    return Notification.objects.filter(user=user, read_at__isnull=True).update(read_at=timezone.now())


def unread_count(user):
    return Notification.objects.filter(user=user, read_at__isnull=True).count()


def get_preferences(user):
    return NotificationPreference.objects.filter(user=user).order_by('event', 'channel')


def set_preference(user, event, channel, enabled):
    if channel not in CHANNELS:
        raise BadRequestError(f"Invalid channel: {channel}. Valid channels: {', '.join(CHANNELS)}")
    preference, _ = NotificationPreference.objects.update_or_create(
        user=user, event=event, channel=channel,
        defaults={'enabled': enabled},
    )
    return preference
