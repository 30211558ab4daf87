"""Celery tasks of the orders app."""

from __future__ import annotations

from typing import List

import structlog
from celery import shared_task

from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.orders.expiry import ExpirySweeper
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService

logger = structlog.get_logger(__name__)


def build_sweeper() -> ExpirySweeper:
    order_repo = OrderDjangoRepository()
    return ExpirySweeper(
        order_repository=order_repo,
        order_service=OrderService(
            order_repository=order_repo,
            product_repository=ProductDjangoRepository(),
        ),
    )


@shared_task(name="orders.expire_pending_orders")
def expire_pending_orders() -> List[str]:
    """Cancel pending orders older than ``ORDER_EXPIRY_HOURS`` (beat, hourly)."""
    outcomes = build_sweeper().sweep()
    logger.info("task.expire_pending_orders.done", processed=len(outcomes))
    return [outcome.message for outcome in outcomes]
