# emporio/api.py
from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from .archive import HistoryArchive
from .digest import NO_ORDERS_MESSAGE
from .errors import NotFoundError
from .lifecycle import LifecycleManager
from .models import HistoryRead, OrderCreate, OrderRead, OrderUpdate
from .reports import DigestService
from .stats import SalesStats, StatsSummary
from .store import OrderStore

router = APIRouter()

# -----------------------------------------------------------------------------
# Models
# -----------------------------------------------------------------------------
class SendSummaryRequest(BaseModel):
    on_date: Optional[date] = Field(default=None, alias="date")


class PreviewResponse(BaseModel):
    date: str
    preview: str


class SendSummaryResponse(BaseModel):
    success: bool
    preview: Optional[str] = None
    message: Optional[str] = None

# -----------------------------------------------------------------------------
# Dependências (instâncias criadas no lifespan, ver main.py)
# -----------------------------------------------------------------------------
def get_store(request: Request) -> OrderStore:
    return request.app.state.services.store


def get_lifecycle(request: Request) -> LifecycleManager:
    return request.app.state.services.lifecycle


def get_archive(request: Request) -> HistoryArchive:
    return request.app.state.services.archive


def get_stats(request: Request) -> SalesStats:
    return request.app.state.services.stats


def get_digests(request: Request) -> DigestService:
    return request.app.state.services.digests

# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------
@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/api/orders", response_model=List[OrderRead])
def list_orders(store: OrderStore = Depends(get_store)):
    return store.list()


@router.get("/api/orders/{order_id}", response_model=OrderRead)
def get_order(order_id: int, store: OrderStore = Depends(get_store)):
    return store.get(order_id)


@router.post("/api/orders", response_model=OrderRead, status_code=201)
def create_order(payload: OrderCreate, lifecycle: LifecycleManager = Depends(get_lifecycle)):
    return lifecycle.create(**payload.model_dump())


@router.put("/api/orders/{order_id}", response_model=OrderRead)
def update_order(
    order_id: int,
    payload: OrderUpdate,
    lifecycle: LifecycleManager = Depends(get_lifecycle),
):
    return lifecycle.update(order_id, payload)


@router.delete("/api/orders/{order_id}")
def delete_order(order_id: int, lifecycle: LifecycleManager = Depends(get_lifecycle)) -> dict:
    if not lifecycle.delete(order_id):
        raise NotFoundError(order_id)
    return {"success": True}


@router.get("/api/history", response_model=List[HistoryRead])
def list_history(archive: HistoryArchive = Depends(get_archive)):
    return archive.list()


@router.get("/api/stats", response_model=StatsSummary)
def stats(sales: SalesStats = Depends(get_stats)):
    return sales.summary()


@router.get("/api/whatsapp/preview", response_model=PreviewResponse)
def whatsapp_preview(
    on_date: Optional[date] = Query(default=None, alias="date"),
    digests: DigestService = Depends(get_digests),
):
    """Mostra o texto do resumo sem enviar."""
    result = digests.preview(on_date)
    return PreviewResponse(date=result.day.isoformat(), preview=result.text or NO_ORDERS_MESSAGE)


@router.post("/api/whatsapp/send-summary", response_model=SendSummaryResponse)
def whatsapp_send_summary(
    payload: Optional[SendSummaryRequest] = None,
    digests: DigestService = Depends(get_digests),
):
    """
    Envia o resumo da data (padrão: hoje). Falha no envio volta success=false
    com o texto em `preview`, para conferência/reenvio manual.
    """
    result = digests.send(payload.on_date if payload else None)
    if result.preview is None:
        return SendSummaryResponse(success=False, message=NO_ORDERS_MESSAGE)
    return SendSummaryResponse(success=result.delivered, preview=result.preview)
