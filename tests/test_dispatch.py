"""Tests for WhatsApp dispatch and the digest pipeline."""

import httpx
import pytest

from emporio.config import Settings
from emporio.dispatch import WhatsAppDispatcher
from emporio.reports import DigestService

from conftest import TODAY


class Recorder:
    """MockTransport handler que guarda as requisições recebidas."""

    def __init__(self, status_code=200, error=None):
        self.status_code = status_code
        self.error = error
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error(request)
        return httpx.Response(self.status_code, text="Message queued")


def _dispatcher(handler, phone="5511999999999", api_key="123456"):
    return WhatsAppDispatcher(
        phone,
        api_key,
        url="https://api.callmebot.test/whatsapp.php",
        transport=httpx.MockTransport(handler),
    )


class TestDispatcher:
    def test_sends_query_parameters(self):
        handler = Recorder()

        assert _dispatcher(handler).send("Olá *mundo*") is True

        (request,) = handler.requests
        assert request.method == "GET"
        assert request.url.host == "api.callmebot.test"
        assert request.url.params["phone"] == "5511999999999"
        assert request.url.params["apikey"] == "123456"
        assert request.url.params["text"] == "Olá *mundo*"

    def test_http_error_status_is_failure(self):
        assert _dispatcher(Recorder(status_code=500)).send("x") is False

    def test_transport_error_is_failure(self):
        def connect_error(request):
            return httpx.ConnectError("sem rede", request=request)

        handler = Recorder(error=connect_error)

        assert _dispatcher(handler).send("x") is False
        assert len(handler.requests) == 1

    @pytest.mark.parametrize("phone, api_key", [(None, "123"), ("5511", None), ("", ""), ("  ", "123")])
    def test_missing_configuration_is_noop(self, phone, api_key):
        handler = Recorder()
        dispatcher = _dispatcher(handler, phone=phone, api_key=api_key)

        assert dispatcher.configured is False
        assert dispatcher.send("x") is False
        assert handler.requests == []

    def test_from_settings(self, settings):
        dispatcher = WhatsAppDispatcher.from_settings(settings)

        assert dispatcher.configured is False
        assert dispatcher.url == settings.CALLMEBOT_URL

    def test_defaults_come_from_settings(self):
        dispatcher = WhatsAppDispatcher("5511", "123")

        assert dispatcher.url == "https://api.callmebot.com/whatsapp.php"
        assert dispatcher.timeout == Settings.model_fields["DISPATCH_TIMEOUT"].default


def _service(stats, handler, **kwargs):
    return DigestService(stats, _dispatcher(handler, **kwargs), today=lambda: TODAY)


class TestDigestService:
    def test_preview_does_not_dispatch(self, make_order, stats):
        make_order(status="paid")
        handler = Recorder()

        preview = _service(stats, handler).preview()

        assert preview.day == TODAY
        assert "Receita do Dia: R$ 50,00" in preview.text
        assert handler.requests == []

    def test_preview_without_orders(self, stats):
        preview = _service(stats, Recorder()).preview()

        assert preview.text is None

    def test_send_for_given_date(self, make_order, stats):
        make_order(status="paid")
        handler = Recorder()

        result = _service(stats, handler).send(TODAY)

        assert result.delivered is True
        assert result.preview is not None
        assert handler.requests[0].url.params["text"] == result.preview

    def test_send_without_orders_skips_dispatch(self, stats):
        handler = Recorder()

        result = _service(stats, handler).send()

        assert result.delivered is False
        assert result.preview is None
        assert handler.requests == []

    def test_send_without_credentials_keeps_preview(self, make_order, stats):
        make_order(status="paid")

        result = _service(stats, Recorder(), phone=None, api_key=None).send()

        assert result.delivered is False
        assert "Receita do Dia" in result.preview

    def test_send_with_channel_down_keeps_preview(self, make_order, stats):
        make_order(status="paid")
        handler = Recorder(status_code=503)

        result = _service(stats, handler).send()

        assert result.delivered is False
        assert result.preview is not None


class TestScheduledRun:
    def test_scheduled_without_credentials(self, make_order, stats):
        make_order(status="paid")

        assert _service(stats, Recorder(), phone=None, api_key=None).run_scheduled() is False

    def test_scheduled_without_orders_is_silent(self, stats):
        handler = Recorder()

        assert _service(stats, handler).run_scheduled() is False
        assert handler.requests == []

    def test_scheduled_sends_today(self, make_order, stats):
        make_order(status="paid")
        handler = Recorder()

        assert _service(stats, handler).run_scheduled() is True
        assert len(handler.requests) == 1

    def test_scheduled_never_raises(self, stats, monkeypatch):
        def broken(_day):
            raise RuntimeError("banco fora do ar")

        monkeypatch.setattr(stats, "daily_snapshot", broken)

        assert _service(stats, Recorder()).run_scheduled() is False
