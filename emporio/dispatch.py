# emporio/dispatch.py
"""
Envio do resumo por WhatsApp via CallMeBot.

`send` nunca levanta exceção: configuração ausente e erros de rede viram
`False` (e log), para não derrubar o agendador nem a requisição.

Dependências: httpx
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from .config import Settings
from .errors import DispatchError

logger = logging.getLogger(__name__)


class WhatsAppDispatcher:
    def __init__(
        self,
        phone: Optional[str],
        api_key: Optional[str],
        *,
        url: str = Settings.model_fields["CALLMEBOT_URL"].default,
        timeout: float = Settings.model_fields["DISPATCH_TIMEOUT"].default,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.phone = (phone or "").strip()
        self.api_key = (api_key or "").strip()
        self.url = url
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "WhatsAppDispatcher":
        return cls(
            settings.WHATSAPP_PHONE,
            settings.CALLMEBOT_APIKEY,
            url=settings.CALLMEBOT_URL,
            timeout=settings.DISPATCH_TIMEOUT,
            **kwargs,
        )

    @property
    def configured(self) -> bool:
        return bool(self.phone and self.api_key)

    def _deliver(self, text: str) -> httpx.Response:
        if not self.configured:
            raise DispatchError("Variáveis não configuradas — resumo não enviado.")
        params = {"phone": self.phone, "text": text, "apikey": self.api_key}
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as cli:
                return cli.get(self.url, params=params)
        except httpx.HTTPError as e:
            raise DispatchError(f"Erro: {e}") from e

    def send(self, text: str) -> bool:
        try:
            response = self._deliver(text)
        except DispatchError as e:
            logger.warning(f"[WhatsApp] {e.reason}")
            return False
        logger.info(f"[WhatsApp] Status: {response.status_code}")
        return response.is_success
