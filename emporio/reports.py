# emporio/reports.py
"""
Pipeline do resumo: estatística do dia -> texto -> WhatsApp.

Os dois gatilhos (manual e agendado) usam o mesmo caminho.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Optional

from pydantic import BaseModel

from .digest import build_digest
from .dispatch import WhatsAppDispatcher
from .stats import SalesStats

logger = logging.getLogger(__name__)


class DigestPreview(BaseModel):
    day: date
    text: Optional[str] = None  # None = sem pedidos


class DigestResult(BaseModel):
    day: date
    delivered: bool
    preview: Optional[str] = None


class DigestService:
    def __init__(
        self,
        stats: SalesStats,
        dispatcher: WhatsAppDispatcher,
        *,
        today: Callable[[], date] = date.today,
        store_name: str = "Biazzi Empório da Carne",
        app_name: str = "Biazzi",
    ):
        self.stats = stats
        self.dispatcher = dispatcher
        self.today = today
        self.store_name = store_name
        self.app_name = app_name

    def build(self, on_date: date) -> Optional[str]:
        snapshot = self.stats.daily_snapshot(on_date)
        return build_digest(snapshot, store_name=self.store_name, app_name=self.app_name)

    def preview(self, on_date: Optional[date] = None) -> DigestPreview:
        day = on_date or self.today()
        return DigestPreview(day=day, text=self.build(day))

    def send(self, on_date: Optional[date] = None) -> DigestResult:
        """Envia o resumo da data; sem pedidos, nada é enviado (delivered=False)."""
        day = on_date or self.today()
        text = self.build(day)
        if text is None:
            return DigestResult(day=day, delivered=False)
        return DigestResult(day=day, delivered=self.dispatcher.send(text), preview=text)

    def run_scheduled(self) -> bool:
        """Gatilho recorrente: resumo de hoje. Nunca levanta exceção."""
        day = self.today()
        logger.info(f"[Cron] Resumo agendado de {day.isoformat()}...")
        try:
            result = self.send(day)
        except Exception:
            logger.exception("[Cron] Falha ao gerar o resumo")
            return False
        if result.preview is None:
            logger.info("[Cron] Sem pedidos hoje.")
        return result.delivered
