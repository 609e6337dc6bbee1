"""HMAC-signed job status webhooks.

Delivery is best effort: transport failures and non-2xx responses are
logged and reported in the returned DeliveryOutcome, never raised.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

import httpx
import structlog
from pydantic import BaseModel, Field, model_validator

from retools.config import WebhookConfig
from retools.exceptions import ConfigError

logger = structlog.get_logger()


class WebhookStatus(str, Enum):
    """Job milestones reported to the tracking endpoint."""

    CLONING_COMPLETE = "cloning_complete"
    AI_COMPLETE = "ai_complete"
    COMPLETED = "completed"
    FAILED = "failed"


# Statuses that may carry pull-request details.
COMPLETION_STATUSES = frozenset({WebhookStatus.COMPLETED})

_OPTIONAL_FIELDS = ("pr_url", "pr_number")


def iso_timestamp(now: datetime | None = None) -> str:
    """Format a UTC timestamp as ISO-8601 with milliseconds and a ``Z`` suffix."""
    now = now or datetime.now(tz=UTC)
    return now.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class WebhookPayload(BaseModel):
    """Status payload in its wire field order.

    Example:
        >>> payload = WebhookPayload(
        ...     job_id="J1", status="failed", message="boom",
        ...     timestamp="2024-01-01T00:00:00.000Z",
        ...     github_run_id="1", github_run_url="https://ci/1",
        ... )
        >>> payload.canonical_body()[:16]
        b'{"job_id":"J1","'
    """

    model_config = {"extra": "forbid"}

    job_id: str = Field(min_length=1)
    status: WebhookStatus
    message: str
    timestamp: str
    github_run_id: str | None = None
    github_run_url: str | None = None
    pr_url: str | None = None
    pr_number: int | None = None

    @model_validator(mode="after")
    def validate_pull_request_fields(self) -> WebhookPayload:
        """Pull-request details belong to completion-class statuses only."""
        if self.status not in COMPLETION_STATUSES and (
            self.pr_url is not None or self.pr_number is not None
        ):
            msg = f"pr_url/pr_number are not allowed for status {self.status.value}"
            raise ValueError(msg)
        return self

    def to_wire(self) -> dict[str, object]:
        """Payload dict with optional fields present only when provided."""
        data = self.model_dump(mode="json")
        for key in _OPTIONAL_FIELDS:
            if data[key] is None:
                del data[key]
        return data

    def canonical_body(self) -> bytes:
        """Compact UTF-8 JSON; these exact bytes are signed and sent."""
        return json.dumps(self.to_wire(), separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def build_payload(
    job_id: str,
    status: WebhookStatus | str,
    *,
    message: str | None = None,
    run_id: str | None = None,
    run_url: str | None = None,
    pr_url: str | None = None,
    pr_number: int | None = None,
    now: datetime | None = None,
) -> WebhookPayload:
    """Construct a payload, filling the default message and timestamp.

    Raises:
        pydantic.ValidationError: If the status is unknown or PR fields are
            given for a non-completion status.
    """
    status_value = status.value if isinstance(status, WebhookStatus) else status
    return WebhookPayload(
        job_id=job_id,
        status=status_value,
        message=message or f"Status: {status_value}",
        timestamp=iso_timestamp(now),
        github_run_id=run_id,
        github_run_url=run_url,
        pr_url=pr_url,
        pr_number=pr_number,
    )


def sign_body(body: bytes, secret: str) -> str:
    """Lowercase hex HMAC-SHA256 of ``body`` keyed by ``secret``."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, secret: str, signature: str) -> bool:
    """Constant-time check of a received signature."""
    return hmac.compare_digest(sign_body(body, secret), signature.strip().lower())


@dataclass
class DeliveryOutcome:
    """Result of a delivery attempt, for logging only.

    Attributes:
        delivered: Whether the endpoint answered with a 2xx status.
        status_code: HTTP status code, if a response was received.
        signature: Signature sent with the request.
        error: Error description when not delivered.
    """

    delivered: bool
    status_code: int | None = None
    signature: str = ""
    error: str = ""


class WebhookNotifier:
    """Signs and delivers status payloads to one endpoint.

    Example:
        >>> notifier = WebhookNotifier("https://app/webhooks", secret="s3cret")
        >>> notifier.notify(build_payload("J1", "ai_complete"))  # doctest: +SKIP
        DeliveryOutcome(delivered=True, status_code=200, ...)
    """

    def __init__(
        self,
        endpoint: str,
        secret: str,
        config: WebhookConfig | None = None,
        *,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the notifier.

        Args:
            endpoint: Webhook URL.
            secret: Shared HMAC secret.
            config: Delivery settings.
            client: Optional preconfigured httpx client.

        Raises:
            ConfigError: If the endpoint or secret is empty.
        """
        if not secret:
            msg = "Webhook secret is required"
            raise ConfigError(msg, field="webhook_secret")
        if not endpoint:
            msg = "Webhook endpoint is required"
            raise ConfigError(msg, field="webhook_url")
        self.endpoint = endpoint
        self._secret = secret
        self.config = config or WebhookConfig()
        self._client = client

    def notify(self, payload: WebhookPayload) -> DeliveryOutcome:
        """Sign and POST the payload. Never raises on delivery failure.

        Args:
            payload: Status payload.

        Returns:
            DeliveryOutcome describing the attempt.
        """
        body = payload.canonical_body()
        signature = sign_body(body, self._secret)
        headers = {
            "Content-Type": "application/json",
            self.config.signature_header: signature,
            "User-Agent": self.config.user_agent,
        }

        log = logger.bind(endpoint=self.endpoint, job_id=payload.job_id, status=payload.status.value)
        log.info("Sending webhook", message=payload.message, signature=signature)

        try:
            if self._client is not None:
                response = self._client.post(
                    self.endpoint, content=body, headers=headers, timeout=self.config.timeout
                )
            else:
                with httpx.Client(timeout=self.config.timeout) as client:
                    response = client.post(self.endpoint, content=body, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            log.error("Webhook failed", error=str(e))
            return DeliveryOutcome(delivered=False, signature=signature, error=str(e))

        if not response.is_success:
            error = f"{response.status_code} - {response.text[:500]}"
            log.error("Webhook failed", status_code=response.status_code, error=error)
            return DeliveryOutcome(
                delivered=False,
                status_code=response.status_code,
                signature=signature,
                error=error,
            )

        log.info("Webhook sent successfully", status_code=response.status_code)
        return DeliveryOutcome(delivered=True, status_code=response.status_code, signature=signature)


def notify(
    payload: WebhookPayload,
    secret: str,
    endpoint: str,
    *,
    config: WebhookConfig | None = None,
    client: httpx.Client | None = None,
) -> DeliveryOutcome:
    """Convenience function to sign and deliver one payload."""
    return WebhookNotifier(endpoint, secret, config, client=client).notify(payload)
