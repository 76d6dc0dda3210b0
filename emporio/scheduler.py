# emporio/scheduler.py
"""
Gatilho semanal do resumo (padrão: domingo às 20h, America/Sao_Paulo).

Uma única tarefa em background dorme até o próximo horário e executa o job
numa thread. Falhas são registradas em log e não há nova tentativa.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WeeklySchedule:
    weekday: int  # 0=segunda ... 6=domingo
    hour: int
    minute: int = 0
    tz: ZoneInfo = field(default_factory=lambda: ZoneInfo("America/Sao_Paulo"))

    def __post_init__(self) -> None:
        if not 0 <= self.weekday <= 6:
            raise ValueError(f"weekday fora de 0..6: {self.weekday}")
        if not 0 <= self.hour <= 23:
            raise ValueError(f"hour fora de 0..23: {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValueError(f"minute fora de 0..59: {self.minute}")

    def next_run(self, now: datetime) -> datetime:
        """Próximo disparo estritamente depois de `now`, no fuso do agendamento."""
        local = now.astimezone(self.tz) if now.tzinfo else now.replace(tzinfo=self.tz)
        candidate = local.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        candidate += timedelta(days=(self.weekday - local.weekday()) % 7)
        if candidate <= local:
            candidate += timedelta(days=7)
        return candidate


class DigestScheduler:
    def __init__(
        self,
        job: Callable[[], object],
        schedule: WeeklySchedule,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.job = job
        self.schedule = schedule
        self._clock = clock or (lambda: datetime.now(schedule.tz))
        self._task: Optional[asyncio.Task] = None
        self._lock = threading.Lock()
        self._last: Optional[datetime] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def next_run(self) -> datetime:
        now = self._clock()
        if self._last is not None and now < self._last:
            now = self._last  # acordou um pouco antes: não repete o mesmo disparo
        return self.schedule.next_run(now)

    def fire(self) -> bool:
        """Executa o job uma vez. Retorna False se falhou ou já estava rodando."""
        if not self._lock.acquire(blocking=False):
            logger.warning("[Cron] Execução anterior ainda em andamento, disparo ignorado.")
            return False
        try:
            self.job()
            return True
        except Exception:
            logger.exception("[Cron] Falha na execução agendada")
            return False
        finally:
            self._lock.release()

    async def _loop(self) -> None:
        while True:
            try:
                target = self.next_run()
                delay = max(0.0, (target - self._clock()).total_seconds())
                logger.info(f"[Cron] Próximo resumo: {target.isoformat()}")
                await asyncio.sleep(delay)
                self._last = target
                await asyncio.to_thread(self.fire)
            except asyncio.CancelledError:
                break

    def start(self) -> None:
        if self.running:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._loop())

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
