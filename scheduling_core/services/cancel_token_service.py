"""
Signed cancellation links for bookings and webinar registrations.

Token format (issued links depend on it):
    base64url(json(payload)) + "." + base64url(hmac_sha256(secret, first_segment))
Padding is stripped from both segments; payload keys are camelCase in
declaration order.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
from typing import Any, Optional

from pydantic import ValidationError

from ..core.config import settings
from ..core.constants import BOOKING_CANCEL_PATH, WEBINAR_CANCEL_PATH
from ..core.exceptions import ServiceException
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..schemas.cancel_token import (
    BookingCancelPayload,
    CancelTokenPayload,
    WebinarCancelPayload,
)

logger = logging.getLogger(__name__)

_BOOKING_FIELDS = ("tenantId", "eventId", "date")
_WEBINAR_FIELDS = ("tenantId", "productId", "email")


def _secret_value(value: Any) -> str:
    if value is None:
        return ""
    if hasattr(value, "get_secret_value"):
        return value.get_secret_value() or ""
    return str(value)


def _kind_of(payload: CancelTokenPayload) -> str:
    return "booking" if isinstance(payload, BookingCancelPayload) else "webinar"


class CancelTokenService:
    """
    Encodes and verifies cancellation tokens.

    A bad token is an expected visitor outcome: ``decode`` returns None
    instead of raising.
    """

    def __init__(self, secret: Optional[str] = None):
        self._secret = (secret or self._resolve_secret()).encode("utf-8")

    def encode(self, payload: CancelTokenPayload) -> str:
        body = json.dumps(
            payload.model_dump(mode="json", by_alias=True),
            separators=(",", ":"),
            ensure_ascii=False,
        )
        segment = self._b64encode(body.encode("utf-8"))
        return f"{segment}.{self._sign(segment)}"

    def decode(self, token: Optional[str]) -> Optional[CancelTokenPayload]:
        """Verified payload of either shape, or None for any invalid token."""
        if not isinstance(token, str) or token.count(".") != 1:
            return self._reject("malformed")
        segment, signature = token.split(".")
        if not segment or not signature:
            return self._reject("malformed")

        expected = self._sign(segment).encode("utf-8")
        if not hmac.compare_digest(expected, signature.encode("utf-8")):
            return self._reject("bad_signature")

        try:
            data = json.loads(self._b64decode(segment))
        except (binascii.Error, UnicodeDecodeError, ValueError):
            return self._reject("bad_payload")
        if not isinstance(data, dict):
            return self._reject("bad_payload")

        payload = self._payload_from(data)
        if payload is None:
            return self._reject("bad_payload")
        prometheus_metrics.record_cancel_token(_kind_of(payload), "valid")
        return payload

    def decode_booking(self, token: Optional[str]) -> Optional[BookingCancelPayload]:
        payload = self.decode(token)
        if isinstance(payload, BookingCancelPayload):
            return payload
        if payload is not None:
            self._reject("wrong_kind", kind="booking")
        return None

    def decode_webinar(self, token: Optional[str]) -> Optional[WebinarCancelPayload]:
        payload = self.decode(token)
        if isinstance(payload, WebinarCancelPayload):
            return payload
        if payload is not None:
            self._reject("wrong_kind", kind="webinar")
        return None

    def build_booking_cancel_url(
        self, payload: BookingCancelPayload, base_url: Optional[str] = None
    ) -> str:
        return self._build_url(BOOKING_CANCEL_PATH, payload, base_url)

    def build_webinar_cancel_url(
        self, payload: WebinarCancelPayload, base_url: Optional[str] = None
    ) -> str:
        return self._build_url(WEBINAR_CANCEL_PATH, payload, base_url)

    def _build_url(self, path: str, payload: CancelTokenPayload, base_url: Optional[str]) -> str:
        base = (base_url or settings.public_base_url).rstrip("/")
        return f"{base}{path}?token={self.encode(payload)}"

    def _resolve_secret(self) -> str:
        secret = _secret_value(getattr(settings, "cancel_token_secret", None))
        if not secret:
            secret = _secret_value(getattr(settings, "secret_key", None))
        if not secret:
            raise ServiceException(
                "Cancel token secret not configured", code="cancel_token_secret_missing"
            )
        return secret

    def _sign(self, segment: str) -> str:
        digest = hmac.new(self._secret, segment.encode("utf-8"), hashlib.sha256).digest()
        return self._b64encode(digest)

    @staticmethod
    def _payload_from(data: dict[str, Any]) -> Optional[CancelTokenPayload]:
        model: Any
        if all(data.get(field) for field in _BOOKING_FIELDS):
            model = BookingCancelPayload
        elif all(data.get(field) for field in _WEBINAR_FIELDS):
            model = WebinarCancelPayload
        else:
            return None
        try:
            return model.model_validate(data)
        except ValidationError:
            return None

    @staticmethod
    def _reject(reason: str, kind: str = "unknown") -> None:
        logger.info("cancel_token_rejected", extra={"reason": reason, "kind": kind})
        prometheus_metrics.record_cancel_token(kind, reason)
        return None

    @staticmethod
    def _b64encode(raw: bytes) -> str:
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    @staticmethod
    def _b64decode(segment: str) -> bytes:
        padding = "=" * (-len(segment) % 4)
        return base64.urlsafe_b64decode((segment + padding).encode("ascii"))
