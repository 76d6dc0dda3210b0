"""Pytest fixtures for emporio tests."""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from emporio.config import Settings
from emporio.services import build_services

TODAY = date(2026, 10, 18)  # domingo


@pytest.fixture
def settings(tmp_path):
    """Settings isoladas: SQLite temporário, sem .env, sem WhatsApp, sem agendador."""
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}",
        DIGEST_ENABLED=False,
        WHATSAPP_PHONE=None,
        CALLMEBOT_APIKEY=None,
    )


def _pin_today(services):
    services.store.today = lambda: TODAY
    services.digests.today = lambda: TODAY
    return services


@pytest.fixture
def services(settings):
    svc = _pin_today(build_services(settings))
    yield svc
    svc.close()


@pytest.fixture
def store(services):
    return services.store


@pytest.fixture
def archive(services):
    return services.archive


@pytest.fixture
def lifecycle(services):
    return services.lifecycle


@pytest.fixture
def stats(services):
    return services.stats


@pytest.fixture
def make_order(lifecycle):
    """Cria um pedido e, opcionalmente, o leva a um status final."""

    def _make(status=None, items=None, payment="pix", name="Cliente", order_date=TODAY):
        order = lifecycle.create(
            name=name,
            items=items or [{"type": "meat", "qty": "1", "price": "50", "subtotal": "50"}],
            payment=payment,
            order_date=order_date,
        )
        if status is not None:
            order = lifecycle.update(order.id, {"status": status})
        return order

    return _make


@pytest.fixture
def client(settings):
    from emporio.main import create_app

    app = create_app(settings)
    with TestClient(app) as c:
        _pin_today(app.state.services)
        yield c
