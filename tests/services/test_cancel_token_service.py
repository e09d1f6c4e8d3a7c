import base64
from datetime import date
import json

from pydantic import SecretStr
import pytest

from scheduling_core.core.config import settings
from scheduling_core.core.exceptions import ServiceException
from scheduling_core.schemas import BookingCancelPayload, WebinarCancelPayload
from scheduling_core.services.cancel_token_service import CancelTokenService


@pytest.fixture
def token_service(cancel_secret) -> CancelTokenService:
    return CancelTokenService()


def _booking() -> BookingCancelPayload:
    return BookingCancelPayload(tenant_id="tenant_1", event_id="evt_42", date=date(2025, 3, 11))


def _webinar() -> WebinarCancelPayload:
    return WebinarCancelPayload(tenant_id="tenant_1", product_id="prod_9", email="zoë@example.com")


def _flip(char: str) -> str:
    return "B" if char == "A" else "A"


def _segment_json(token: str) -> dict:
    segment = token.split(".")[0]
    return json.loads(base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4)))


class TestRoundTrip:
    def test_booking_payload(self, token_service):
        token = token_service.encode(_booking())
        assert token_service.decode(token) == _booking()
        assert token_service.decode_booking(token) == _booking()

    def test_webinar_payload(self, token_service):
        token = token_service.encode(_webinar())
        assert token_service.decode(token) == _webinar()
        assert token_service.decode_webinar(token) == _webinar()

    def test_wire_shape(self, token_service):
        token = token_service.encode(_booking())
        segment, signature = token.split(".")
        assert "=" not in token
        assert len(signature) == 43  # 32-byte HMAC, unpadded base64url
        assert list(_segment_json(token).items()) == [
            ("tenantId", "tenant_1"),
            ("eventId", "evt_42"),
            ("date", "2025-03-11"),
        ]

    def test_encoding_is_deterministic(self, token_service):
        assert token_service.encode(_webinar()) == token_service.encode(_webinar())

    def test_shape_restricted_decoders(self, token_service):
        booking_token = token_service.encode(_booking())
        webinar_token = token_service.encode(_webinar())
        assert token_service.decode_webinar(booking_token) is None
        assert token_service.decode_booking(webinar_token) is None


class TestTampering:
    @pytest.mark.parametrize("payload_factory", [_booking, _webinar])
    def test_any_single_character_change_is_rejected(self, token_service, payload_factory):
        token = token_service.encode(payload_factory())
        for index, char in enumerate(token):
            if char == ".":
                continue
            tampered = token[:index] + _flip(char) + token[index + 1 :]
            assert token_service.decode(tampered) is None, f"position {index}"

    def test_other_secret_is_rejected(self, token_service):
        token = CancelTokenService(secret="someone-else").encode(_booking())
        assert token_service.decode(token) is None

    @pytest.mark.parametrize(
        "token",
        [None, "", "no-dot", "a.b.c", ".sig", "payload.", "!!!.???", 12345],
    )
    def test_malformed_tokens(self, token_service, token):
        assert token_service.decode(token) is None

    def test_signed_non_object_payload(self, token_service):
        segment = CancelTokenService._b64encode(b"[1,2,3]")
        token = f"{segment}.{token_service._sign(segment)}"
        assert token_service.decode(token) is None

    def test_signed_payload_missing_fields(self, token_service):
        segment = CancelTokenService._b64encode(b'{"tenantId":"t","eventId":"e"}')
        token = f"{segment}.{token_service._sign(segment)}"
        assert token_service.decode(token) is None

    def test_signed_payload_with_bad_date(self, token_service):
        segment = CancelTokenService._b64encode(
            b'{"tenantId":"t","eventId":"e","date":"not-a-date"}'
        )
        token = f"{segment}.{token_service._sign(segment)}"
        assert token_service.decode(token) is None


class TestSecretsAndUrls:
    def test_missing_secret_is_a_config_error(self, monkeypatch):
        monkeypatch.setattr(settings, "cancel_token_secret", None)
        monkeypatch.setattr(settings, "secret_key", None)
        with pytest.raises(ServiceException) as exc:
            CancelTokenService()
        assert exc.value.code == "cancel_token_secret_missing"

    def test_falls_back_to_secret_key(self, monkeypatch):
        monkeypatch.setattr(settings, "cancel_token_secret", None)
        monkeypatch.setattr(settings, "secret_key", SecretStr("fallback"))
        token = CancelTokenService().encode(_booking())
        assert CancelTokenService(secret="fallback").decode(token) == _booking()

    def test_booking_cancel_url(self, token_service):
        url = token_service.build_booking_cancel_url(_booking(), base_url="https://book.example.com/")
        prefix = "https://book.example.com/booking/cancel?token="
        assert url.startswith(prefix)
        assert token_service.decode_booking(url[len(prefix) :]) == _booking()

    def test_webinar_cancel_url_uses_configured_base(self, token_service, monkeypatch):
        monkeypatch.setattr(settings, "public_base_url", "https://app.example.com")
        url = token_service.build_webinar_cancel_url(_webinar())
        assert url.startswith("https://app.example.com/webinar/cancel?token=")
