"""
Channel drivers.

Mock drivers are fully functional: email goes through Django's mail
backend, SMS and push are written to :class:`SmsLog` and
:class:`PushNotificationLog`.  Vendor drivers answer "not configured"
until their credentials are set and then call the vendor HTTP API.
"""
from __future__ import annotations

import logging
import uuid
from typing import Optional

import requests
from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone

from core.models import PushNotificationLog, SmsLog
from core.services.notifications.base import BaseDriver

logger = logging.getLogger(__name__)


def _timeout() -> int:
    return getattr(settings, 'NOTIFICATION_HTTP_TIMEOUT', 5)


class MockEmailDriver(BaseDriver):
    name = 'mock_email'
    channel = 'email'

    def send(self, user, subject, message, data=None):
        if not user.email:
            return self.error_response('User does not have an email address', {'user_id': user.pk})
        try:
            sent = send_mail(subject, message, settings.DEFAULT_FROM_EMAIL, [user.email])
        except OSError as e:
            logger.warning('Email to user %s failed: %s', user.pk, e)
            return self.error_response(f'Failed to send email: {e}', {'email': user.email})
        result = self.success_response({'email': user.email, 'sent': sent})
        self.log_notification(user, subject, result)
        return result


class MockSmsDriver(BaseDriver):
    name = 'mock_sms'
    channel = 'sms'

    def send(self, user, subject, message, data=None):
        if not user.phone:
            return self.error_response('User does not have a phone number', {'user_id': user.pk})
        log = SmsLog.objects.create(
            user=user,
            phone=user.phone,
            subject=subject,
            message=message,
            data=data or {},
            driver='mock',
            status='sent',
            external_id=f'mock-{uuid.uuid4().hex[:12]}',
            sent_at=timezone.now(),
        )
        result = self.success_response({'phone': user.phone, 'log_id': log.pk})
        self.log_notification(user, subject, result)
        return result


class MockPushDriver(BaseDriver):
    name = 'mock_push'
    channel = 'push'

    def send(self, user, subject, message, data=None):
        data = data or {}
        log = PushNotificationLog.objects.create(
            user=user,
            title=subject,
            body=message,
            data=data,
            driver='mock',
            status='sent',
            platform=data.get('platform', 'web'),
            device_token=data.get('device_token', ''),
            external_id=f'mock-{uuid.uuid4().hex[:12]}',
            sent_at=timezone.now(),
        )
        result = self.success_response({'log_id': log.pk, 'platform': log.platform})
        self.log_notification(user, subject, result)
        return result


class TwilioDriver(BaseDriver):
    name = 'twilio'
    channel = 'sms'

    def is_configured(self) -> bool:
        return bool(settings.TWILIO_SID and settings.TWILIO_TOKEN and settings.TWILIO_FROM)

    def send(self, user, subject, message, data=None):
        if not self.is_configured():
            return self.error_response('Twilio is not configured. Set TWILIO_SID, TWILIO_TOKEN and TWILIO_FROM.')
        if not user.phone:
            return self.error_response('User does not have a phone number', {'user_id': user.pk})
        url = f'https://api.twilio.com/2010-04-01/Accounts/{settings.TWILIO_SID}/Messages.json'
        try:
            resp = requests.post(
                url,
                data={'From': settings.TWILIO_FROM, 'To': user.phone, 'Body': f'{subject}\n\n{message}'},
                auth=(settings.TWILIO_SID, settings.TWILIO_TOKEN),
                timeout=_timeout(),
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.warning('Twilio send failed for user %s: %s', user.pk, e)
            return self.error_response(f'Failed to send SMS via Twilio: {e}')
        body = resp.json()
        result = self.success_response({'message_sid': body.get('sid'), 'status': body.get('status'), 'phone': user.phone})
        self.log_notification(user, subject, result)
        return result


class MailgunDriver(BaseDriver):
    name = 'mailgun'
    channel = 'email'

    def is_configured(self) -> bool:
        return bool(settings.MAILGUN_DOMAIN and settings.MAILGUN_SECRET)

    def send(self, user, subject, message, data=None):
        if not self.is_configured():
            return self.error_response('Mailgun is not configured. Set MAILGUN_DOMAIN and MAILGUN_SECRET.')
        if not user.email:
            return self.error_response('User does not have an email address', {'user_id': user.pk})
        url = f'https://{settings.MAILGUN_ENDPOINT}/v3/{settings.MAILGUN_DOMAIN}/messages'
        try:
            resp = requests.post(
                url,
                auth=('api', settings.MAILGUN_SECRET),
                data={'from': settings.DEFAULT_FROM_EMAIL, 'to': user.email, 'subject': subject, 'text': message},
                timeout=_timeout(),
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.warning('Mailgun send failed for user %s: %s', user.pk, e)
            return self.error_response(f'Failed to send email via Mailgun: {e}')
        result = self.success_response({'message_id': resp.json().get('id'), 'email': user.email})
        self.log_notification(user, subject, result)
        return result


class FirebaseDriver(BaseDriver):
    name = 'firebase'
    channel = 'push'
    endpoint = 'https://fcm.googleapis.com/fcm/send'

    def is_configured(self) -> bool:
        return bool(settings.FIREBASE_SERVER_KEY and settings.FIREBASE_SENDER_ID)

    def send(self, user, subject, message, data=None):
        if not self.is_configured():
            return self.error_response('Firebase is not configured. Set FIREBASE_SERVER_KEY and FIREBASE_SENDER_ID.')
        data = data or {}
        token = data.get('device_token')
        if not token:
            return self.error_response('No device token for push notification', {'user_id': user.pk})
        try:
            resp = requests.post(
                self.endpoint,
                json={'to': token, 'notification': {'title': subject, 'body': message}, 'data': data},
                headers={'Authorization': f'key={settings.FIREBASE_SERVER_KEY}'},
                timeout=_timeout(),
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.warning('Firebase send failed for user %s: %s', user.pk, e)
            return self.error_response(f'Failed to send push via Firebase: {e}')
        result = self.success_response({'multicast_id': resp.json().get('multicast_id')})
        self.log_notification(user, subject, result)
        return result


DRIVERS = {
    'email': {'mock': MockEmailDriver, 'mailgun': MailgunDriver},
    'sms': {'mock': MockSmsDriver, 'twilio': TwilioDriver},
    'push': {'mock': MockPushDriver, 'firebase': FirebaseDriver},
}

_SETTING_FOR_CHANNEL = {
    'email': 'NOTIFICATION_EMAIL_DRIVER',
    'sms': 'NOTIFICATION_SMS_DRIVER',
    'push': 'NOTIFICATION_PUSH_DRIVER',
}


def driver_for(channel: str) -> Optional[BaseDriver]:
    """Instantiate the configured driver for ``channel`` or None if unknown."""
    choices = DRIVERS.get(channel)
    if not choices:
        return None
    name = getattr(settings, _SETTING_FOR_CHANNEL[channel], 'mock')
    cls = choices.get(name)
    if cls is None:
        logger.warning('Unknown %s driver %r, using mock', channel, name)
        cls = choices['mock']
    return cls()
