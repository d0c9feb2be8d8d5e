"""
Mobile and web push through Firebase Cloud Messaging.

Push is optional: without Firebase service-account settings nothing is
sent.  Tokens that Firebase reports as unregistered are deleted so they
are not retried.
"""
import logging

import firebase_admin
from django.conf import settings
from firebase_admin import credentials, exceptions, messaging

from .models import PushToken

logger = logging.getLogger(__name__)

APP_NAME = "eventconnect"
BATCH_SIZE = 500
STALE_TOKEN_ERRORS = (messaging.UnregisteredError, messaging.SenderIdMismatchError)


def is_configured() -> bool:
    return bool(
        settings.FIREBASE_PROJECT_ID
        and settings.FIREBASE_PRIVATE_KEY
        and settings.FIREBASE_CLIENT_EMAIL
    )


def _app():
    try:
        return firebase_admin.get_app(APP_NAME)
    except ValueError:
        cert = credentials.Certificate({
            "type": "service_account",
            "project_id": settings.FIREBASE_PROJECT_ID,
            "private_key": settings.FIREBASE_PRIVATE_KEY.replace("\\n", "\n"),
            "client_email": settings.FIREBASE_CLIENT_EMAIL,
            "token_uri": "https://oauth2.googleapis.com/token",
        })
        return firebase_admin.initialize_app(cert, name=APP_NAME)


def build_message(notification, tokens) -> messaging.MulticastMessage:
    # FCM data payloads only carry strings
    data = {key: str(value) for key, value in (notification.data or {}).items()}
    data.update({"notification_id": str(notification.pk), "kind": notification.kind})
    urgent = notification.priority in ("high", "urgent")
    return messaging.MulticastMessage(
        tokens=list(tokens),
        notification=messaging.Notification(title=notification.title, body=notification.body or None),
        data=data,
        android=messaging.AndroidConfig(
            priority="high" if urgent else "normal",
            notification=messaging.AndroidNotification(sound="default", channel_id="eventconnect_channel"),
        ),
        apns=messaging.APNSConfig(payload=messaging.APNSPayload(aps=messaging.Aps(sound="default", badge=1))),
    )


def send_push(notification) -> int:
    """Push ``notification`` to every registered device of its recipient.

    Returns the number of devices Firebase accepted the message for.
    """
    if not is_configured():
        return 0
    tokens = list(PushToken.objects.filter(user_id=notification.recipient_id).values_list("token", flat=True))
    if not tokens:
        return 0

    app = _app()
    sent = 0
    stale = []
    for start in range(0, len(tokens), BATCH_SIZE):
        batch = tokens[start:start + BATCH_SIZE]
        try:
            result = messaging.send_each_for_multicast(build_message(notification, batch), app=app)
        except exceptions.FirebaseError as e:
            logger.warning("Push to user %s failed: %s", notification.recipient_id, e)
            continue
        sent += result.success_count
        for token, response in zip(batch, result.responses):
            if not response.success and isinstance(response.exception, STALE_TOKEN_ERRORS):
                stale.append(token)

    if stale:
        PushToken.objects.filter(token__in=stale).delete()
        logger.info("Dropped %s stale push tokens for user %s", len(stale), notification.recipient_id)
    return sent
