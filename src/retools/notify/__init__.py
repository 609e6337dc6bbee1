"""Signed job status notifications."""

from retools.notify.webhook import (
    COMPLETION_STATUSES,
    DeliveryOutcome,
    WebhookNotifier,
    WebhookPayload,
    WebhookStatus,
    build_payload,
    notify,
    sign_body,
    verify_signature,
)

__all__ = [
    "COMPLETION_STATUSES",
    "DeliveryOutcome",
    "WebhookNotifier",
    "WebhookPayload",
    "WebhookStatus",
    "build_payload",
    "notify",
    "sign_body",
    "verify_signature",
]
