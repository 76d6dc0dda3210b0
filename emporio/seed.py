# emporio/seed.py
from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from random import Random
from typing import Optional

from sqlalchemy import func
from sqlmodel import Session, select

from .config import Settings, get_settings
from .models import HistoryRecord, Order, OrderItem
from .services import Services, build_services

# ---------- Parâmetros do seed (ajuste à vontade) ----------
DIAS = 14
PEDIDOS_POR_DIA_MIN = 2
PEDIDOS_POR_DIA_MAX = 8
FORMAS = ["cash", "card", "pix"]
PRODUTOS = {  # tipo -> (preço unitário, quantidades possíveis)
    "meat": (Decimal("59.90"), [Decimal("0.5"), Decimal("1"), Decimal("1.5"), Decimal("2")]),
    "ribs": (Decimal("44.90"), [Decimal("1"), Decimal("1.5"), Decimal("2.5")]),
    "chicken": (Decimal("42.00"), [Decimal("1"), Decimal("2"), Decimal("3")]),
}
NOMES = ["Ana", "Bruno", "Carla", "Diego", "Elisa", "Fábio", "Gabi", "Heitor", "Iara", "João"]


def run(services: Services, *, dias: int = DIAS, end: Optional[date] = None, seed: int = 42) -> int:
    """
    Gera pedidos de demonstração nos últimos `dias` dias. Parte deles é
    finalizada pelo LifecycleManager (gera histórico). Retorna quantos foram criados.
    """
    rnd = Random(seed)  # determinístico
    end = end or services.settings.today()
    criados = 0

    for offset in range(dias):
        dia = end - timedelta(days=offset)
        for _ in range(rnd.randint(PEDIDOS_POR_DIA_MIN, PEDIDOS_POR_DIA_MAX)):
            items = []
            for tipo in rnd.sample(sorted(PRODUTOS), k=rnd.randint(1, 2)):
                price, qtys = PRODUTOS[tipo]
                qty = rnd.choice(qtys)
                items.append({"type": tipo, "qty": qty, "price": price})

            order = services.lifecycle.create(
                name=rnd.choice(NOMES),
                phone=f"1199{rnd.randint(1000000, 9999999)}",
                items=items,
                payment=rnd.choice(FORMAS),
                order_date=dia,
            )
            criados += 1

            sorte = rnd.random()
            if sorte < 0.7:
                services.lifecycle.update(order.id, {"status": "paid"})
            elif sorte < 0.8:
                services.lifecycle.update(order.id, {"status": "cancelled"})

    return criados


def main(settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    services = build_services(settings)
    print(f"Usando DB em: {settings.DATABASE_URL}")
    try:
        run(services)

        # contagens finais
        with Session(services.engine) as s:
            def count(model) -> int:
                return s.exec(select(func.count()).select_from(model)).one()

            print("Contagens após seed:")
            print("  pedidos  :", count(Order))
            print("  itens    :", count(OrderItem))
            print("  histórico:", count(HistoryRecord))
    finally:
        services.close()


if __name__ == "__main__":
    main()
    print("Seed OK ✔")
