"""
Test suite for Notifications
Tests: channel dispatch, preferences, templates and the inbox API
"""
from unittest.mock import patch

from django.core import mail
from django.test import TestCase
from rest_framework import status
from marketplace.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from marketplace.notifications import services
from marketplace.notifications.models import Notification, NotificationPreference, NotificationTemplate


class DispatchTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()

    def test_in_app_stored_as_sent(self):
        results = services.send_notification([self.user.pk], 'order.shipped', ['in_app'],
                                             'Order shipped', 'Your order is on its way')
        self.assertEqual(len(results), 1)
        self.assertTrue(results[0].success)
        notification = Notification.objects.get(pk=results[0].notification_id)
        self.assertEqual(notification.status, 'sent')
        self.assertIsNotNone(notification.sent_at)
        self.assertIsNone(notification.read_at)

    def test_email_sent_through_mail_backend(self):
        results = services.send_notification([self.user.pk], 'order.shipped', ['email'], 'Shipped', 'On its way')
        self.assertTrue(results[0].success)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, [self.user.email])
        self.assertEqual(mail.outbox[0].subject, 'Shipped')

    def test_email_failure_marks_notification_failed(self):
        with patch('marketplace.notifications.services.send_mail', side_effect=OSError('smtp down')):
            results = services.send_notification([self.user.pk], 'order.shipped', ['email'], 'Shipped', 'Body')
        self.assertFalse(results[0].success)
        self.assertEqual(results[0].error, 'smtp down')
        self.assertEqual(Notification.objects.get().status, 'failed')

    def test_sms_and_push_not_implemented(self):
        results = services.send_notification([self.user.pk], 'order.shipped', ['sms', 'push'], 'Title', 'Body')
        self.assertEqual([r.error for r in results], ['SMS channel not implemented', 'Push channel not implemented'])
        self.assertFalse(any(r.success for r in results))
        self.assertFalse(Notification.objects.exists())

    def test_disabled_preference_skips_user(self):
        services.set_preference(self.user, 'promo.sale', 'in_app', False)
        other = TestDataFactory.create_user()
        results = services.send_notification([self.user.pk, other.pk], 'promo.sale', ['in_app'], 'Sale', 'Now on')
        self.assertEqual(len(results), 1)
        self.assertEqual(Notification.objects.get().user, other)

    def test_critical_event_bypasses_preferences(self):
        services.set_preference(self.user, 'user.otp.requested', 'in_app', False)
        results = services.send_notification([self.user.pk], 'user.otp.requested', ['in_app'], 'OTP', '123456')
        self.assertTrue(results[0].success)

    def test_active_template_renders_with_data(self):
        NotificationTemplate.objects.create(
            name='org-approved-in-app',
            event='organization.approved',
            channel='in_app',
            subject='{{ name }} approved',
            template='Welcome aboard, {{ name }}!',
        )
        services.send_notification([self.user.pk], 'organization.approved', ['in_app'], 'fallback', 'fallback',
                                   data={'name': 'Acme'})
        notification = Notification.objects.get()
        self.assertEqual(notification.title, 'Acme approved')
        self.assertEqual(notification.message, 'Welcome aboard, Acme!')

    def test_inactive_template_ignored(self):
        NotificationTemplate.objects.create(name='off', event='x.y', channel='in_app', template='ignored',
                                            is_active=False)
        services.send_notification([self.user.pk], 'x.y', ['in_app'], 'Title', 'Given body')
        self.assertEqual(Notification.objects.get().message, 'Given body')

    def test_preference_upsert(self):
        services.set_preference(self.user, 'promo.sale', 'email', False)
        services.set_preference(self.user, 'promo.sale', 'email', True)
        self.assertEqual(NotificationPreference.objects.count(), 1)
        self.assertTrue(services.is_channel_enabled(self.user.pk, 'promo.sale', 'email'))


class NotificationAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.client.authenticate_user(self.user)
        services.send_notification([self.user.pk], 'order.shipped', ['in_app'], 'One', 'First')
        services.send_notification([self.user.pk], 'order.delivered', ['in_app'], 'Two', 'Second')

    def test_list_own_notifications(self):
        TestDataFactory.create_user()
        response = self.client.get('/api/v1/notifications/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['meta']['total_items'], 2)
        self.assertEqual(response.data['results'][0]['title'], 'Two')

    def test_unread_count_and_mark_read(self):
        response = self.client.get('/api/v1/notifications/unread-count/')
        self.assertEqual(response.data['count'], 2)

        notification = Notification.objects.filter(user=self.user).first()
        response = self.client.post(f'/api/v1/notifications/{notification.pk}/read/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_read'])
        self.assertEqual(services.unread_count(self.user), 1)

    def test_mark_all_read(self):
        response = self.client.post('/api/v1/notifications/read-all/')
        self.assertEqual(response.data['updated'], 2)
        self.assertEqual(services.unread_count(self.user), 0)

    def test_cannot_read_others_notification(self):
        other = TestDataFactory.create_user()
        result = services.send_notification([other.pk], 'order.shipped', ['in_app'], 'Theirs', '')[0]
        response = self.client.post(f'/api/v1/notifications/{result.notification_id}/read/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_preferences(self):
        response = self.client.put('/api/v1/notifications/preferences/',
                                   {'event': 'promo.sale', 'channel': 'email', 'enabled': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['enabled'])
        response = self.client.get('/api/v1/notifications/preferences/')
        self.assertEqual(len(response.data), 1)

    def test_invalid_channel_rejected(self):
        response = self.client.put('/api/v1/notifications/preferences/',
                                   {'event': 'promo.sale', 'channel': 'pigeon', 'enabled': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
