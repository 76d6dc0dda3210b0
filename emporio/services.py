# emporio/services.py
"""
Instâncias únicas do processo (engine, store, gerenciador de ciclo de vida,
estatísticas, envio do resumo). Construídas uma vez na inicialização e
injetadas nos componentes; `close()` libera o pool de conexões.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx
from sqlalchemy.engine import Engine

from .archive import HistoryArchive
from .config import Settings
from .db import make_engine
from .dispatch import WhatsAppDispatcher
from .lifecycle import LifecycleManager
from .migrations import run_migrations
from .reports import DigestService
from .scheduler import WeeklySchedule
from .stats import SalesStats
from .store import OrderStore


@dataclass
class Services:
    settings: Settings
    engine: Engine
    store: OrderStore
    archive: HistoryArchive
    lifecycle: LifecycleManager
    stats: SalesStats
    dispatcher: WhatsAppDispatcher
    digests: DigestService

    @property
    def schedule(self) -> WeeklySchedule:
        s = self.settings
        return WeeklySchedule(s.DIGEST_WEEKDAY, s.DIGEST_HOUR, s.DIGEST_MINUTE, s.tz)

    def close(self) -> None:
        self.engine.dispose()


def build_services(
    settings: Settings,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> Services:
    engine = make_engine(settings.DATABASE_URL)
    run_migrations(engine)

    store = OrderStore(engine, today=settings.today)
    archive = HistoryArchive(engine)
    stats = SalesStats(store)
    dispatcher = WhatsAppDispatcher.from_settings(settings, transport=transport)
    return Services(
        settings=settings,
        engine=engine,
        store=store,
        archive=archive,
        lifecycle=LifecycleManager(store, archive),
        stats=stats,
        dispatcher=dispatcher,
        digests=DigestService(
            stats,
            dispatcher,
            today=settings.today,
            store_name=settings.STORE_NAME,
            app_name=settings.APP_NAME,
        ),
    )
