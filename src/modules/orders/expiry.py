"""Expiry sweep for abandoned reservations.

A pending order older than ``ORDER_EXPIRY_HOURS`` is cancelled and its
stock restored.  Orders are handled one by one, each in its own
transaction, so one failure does not stop the sweep.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, List, Optional

import structlog
from django.conf import settings
from django.utils import timezone

from modules.orders.dtos import SweepOutcomeDTO

if TYPE_CHECKING:
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.orders.services import OrderService

logger = structlog.get_logger(__name__)


class ExpirySweeper:
    def __init__(
        self,
        order_repository: IOrderRepository,
        order_service: OrderService,
        expiry_hours: Optional[int] = None,
    ) -> None:
        self._order_repo = order_repository
        self._order_service = order_service
        self.expiry_hours = (
            expiry_hours if expiry_hours is not None else settings.ORDER_EXPIRY_HOURS
        )

    def sweep(self) -> List[SweepOutcomeDTO]:
        cutoff = timezone.now() - timedelta(hours=self.expiry_hours)
        order_ids = self._order_repo.list_expired_pending_ids(cutoff)
        log = logger.bind(cutoff=cutoff.isoformat(), expiry_hours=self.expiry_hours)

        if not order_ids:
            log.info("sweep.nothing_to_expire")
            return []

        log.info("sweep.started", order_count=len(order_ids))
        outcomes = [self._expire(order_id) for order_id in order_ids]
        log.info(
            "sweep.finished",
            cancelled=sum(1 for outcome in outcomes if outcome.success),
            failed=sum(1 for outcome in outcomes if not outcome.success),
        )
        return outcomes

    def _expire(self, order_id: int) -> SweepOutcomeDTO:
        try:
            cancelled = self._order_service.cancel_if_pending(
                order_id,
                notes=f"Expired after {self.expiry_hours}h without payment",
            )
        except Exception:
            logger.exception("sweep.order_failed", order_id=order_id)
            return SweepOutcomeDTO(
                order_id=order_id,
                success=False,
                message=f"Falha ao processar pedido #{order_id}.",
            )

        if not cancelled:
            # Paid or cancelled between the select and the lock.
            return SweepOutcomeDTO(
                order_id=order_id,
                success=True,
                message=f"Pedido #{order_id} já finalizado; nada a fazer.",
            )
        return SweepOutcomeDTO(
            order_id=order_id,
            success=True,
            message=f"Pedido #{order_id} cancelado e estoque devolvido.",
        )
