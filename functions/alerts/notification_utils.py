"""
FCM fire alert content and per-recipient delivery
"""

import datetime
import math
import time
from typing import Callable, Optional, Sequence

from firebase_functions import logger
from firebase_admin import messaging

from config.loader import AlertSettings

from .models import AlertContent, DeliveryFailure, DispatchResult, Report


def _radius_km_label(radius_meters: float) -> str:
    # Round half up, 2500m reads as 3km
    return str(int(math.floor(radius_meters / 1000.0 + 0.5)))


def _utc_timestamp(now: Optional[datetime.datetime] = None) -> str:
    now = now or datetime.datetime.now(datetime.timezone.utc)
    return now.astimezone(datetime.timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_alert_content(report_id: str, report: Report, settings: AlertSettings,
                        now: Optional[datetime.datetime] = None) -> AlertContent:
    """Build the notification text and data payload shared by every recipient."""
    description = report.description or settings.default_description
    radius_km = _radius_km_label(report.radius_meters)

    return AlertContent(
        title=settings.notification_title,
        body=f"Fire reported {radius_km}km from you: {description}",
        data={
            "type": "fire_report",
            "reportId": report_id,
            "latitude": str(report.latitude),
            "longitude": str(report.longitude),
            "radiusKm": radius_km,
            "description": description,
            "timestamp": _utc_timestamp(now),
        },
    )


def build_message(token: str, content: AlertContent, settings: AlertSettings) -> messaging.Message:
    """Create a single-recipient FCM message with Android and APNs delivery hints."""
    return messaging.Message(
        notification=messaging.Notification(
            title=content.title,
            body=content.body,
        ),
        data=dict(content.data),
        token=token,
        android=messaging.AndroidConfig(
            priority='high',
            notification=messaging.AndroidNotification(
                channel_id=settings.android_channel_id,
                icon=settings.android_icon,
                color=settings.android_color,
                default_sound=True,
            )
        ),
        apns=messaging.APNSConfig(
            payload=messaging.APNSPayload(
                aps=messaging.Aps(
                    alert=messaging.ApsAlert(
                        title=content.title,
                        body=content.body
                    ),
                    sound='default',
                    category=settings.apns_category
                )
            )
        )
    )


def dispatch_notifications(
    tokens: Sequence[str],
    content: AlertContent,
    settings: AlertSettings,
    send: Optional[Callable[[messaging.Message], str]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> DispatchResult:
    """
    Send the alert to every token, one message per token.

    A failed send is recorded and the remaining tokens are still attempted;
    nothing is raised. A pacing delay of ``settings.send_delay_seconds`` is
    applied between sends to stay under FCM rate limits.

    Args:
        tokens: Recipient FCM tokens, possibly empty
        content: Alert title, body and data payload
        settings: AlertSettings
        send: Message sender, defaults to firebase_admin.messaging.send
        sleep: Delay function used for pacing

    Returns:
        DispatchResult with success and failure counts
    """
    result = DispatchResult()
    if not tokens:
        logger.info("❌ No recipients - no notifications sent")
        return result

    send = send or messaging.send
    delay = settings.send_delay_seconds
    logger.info(f"📨 Sending {len(tokens)} individual notifications...")

    for i, token in enumerate(tokens):
        logger.info(f"📤 Sending notification {i + 1}/{len(tokens)} to token: {token[:20]}...")
        try:
            response = send(build_message(token, content, settings))
            result.success_count += 1
            logger.info(f"✅ Notification {i + 1} sent successfully: {response}")
        except Exception as send_error:
            result.failure_count += 1
            error_message = str(send_error) or type(send_error).__name__
            result.failures.append(DeliveryFailure(index=i, token_preview=token[:20], error=error_message))
            logger.error(f"❌ Notification {i + 1} failed: {error_message}")

        if delay > 0 and i < len(tokens) - 1:
            sleep(delay)

    logger.info(f"✅ All notifications processed: {result.success_count} successful, "
                f"{result.failure_count} failed, {len(tokens)} total")
    if result.failures:
        logger.warn(f"❌ Failed notifications: {[vars(f) for f in result.failures]}")

    return result
