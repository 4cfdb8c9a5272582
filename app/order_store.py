"""Order persistence behind the gateway.

``OrderStore`` is the seam between the gateway logic and whatever owns the
orders. ``SqlOrderStore`` keeps them in a SQL database with an optional
Redis cache of order snapshots.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

from redis.asyncio import Redis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from adapters.exceptions import OrderNotFoundError
from models import Order, OrderItem, OrderNote
from schemas import PAID_STATUSES, OrderCreate, OrderRecord, OrderStatus

logger = logging.getLogger(__name__)


class OrderStore(ABC):
    """Abstract order store used by checkout and webhook reconciliation."""

    @abstractmethod
    async def create_order(self, data: OrderCreate) -> OrderRecord:
        pass

    @abstractmethod
    async def get_order(self, order_id: int) -> Optional[OrderRecord]:
        pass

    @abstractmethod
    async def find_by_transaction_id(self, transaction_id: str) -> Optional[OrderRecord]:
        """Return the order whose correlation attribute equals ``transaction_id``.

        When several orders carry the same id, the oldest one is returned.
        """
        pass

    @abstractmethod
    async def set_transaction_id(self, order_id: int, transaction_id: str) -> OrderRecord:
        pass

    @abstractmethod
    async def mark_paid(self, order_id: int, note: Optional[str] = None) -> OrderRecord:
        """Record a completed payment.

        Orders that are already paid are left as they are.
        """
        pass

    @abstractmethod
    async def update_status(
        self, order_id: int, status: OrderStatus, note: Optional[str] = None
    ) -> OrderRecord:
        """Move the order to ``status``; a no-op when it is already there."""
        pass

    @abstractmethod
    async def add_note(self, order_id: int, note: str) -> OrderRecord:
        pass


class SqlOrderStore(OrderStore):
    """Order store backed by SQLAlchemy with optional Redis caching."""

    _CACHE_TTL = 300

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        redis: Optional[Redis] = None,
    ):
        self._sessionmaker = sessionmaker
        self._redis = redis

    @staticmethod
    def _cache_key(order_id: int) -> str:
        return f"order:{order_id}"

    @staticmethod
    async def _load(session: AsyncSession, order_id: int) -> Order:
        order = await session.get(Order, order_id)
        if order is None:
            raise OrderNotFoundError(f"Order not found: {order_id}")
        return order

    async def _cache(self, record: OrderRecord) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.setex(
                self._cache_key(record.order_id),
                self._CACHE_TTL,
                record.model_dump_json(),
            )
        except Exception as exc:  # pragma: no cover - cache failure
            logger.warning("Failed to cache order %s: %s", record.order_id, exc)

    async def create_order(self, data: OrderCreate) -> OrderRecord:
        order = Order(
            currency=data.currency,
            customer_email=data.customer_email,
            status=OrderStatus.PENDING.value,
            items=[
                OrderItem(
                    name=item.name,
                    category=item.category,
                    unit_price=item.unit_price,
                    quantity=item.quantity,
                    description=item.description,
                )
                for item in data.items
            ],
            notes=[],
        )
        async with self._sessionmaker() as session:
            session.add(order)
            await session.flush()
            record = OrderRecord.model_validate(order)
            await session.commit()

        logger.info("Created order %s", record.order_id)
        await self._cache(record)
        return record

    async def get_order(self, order_id: int) -> Optional[OrderRecord]:
        if self._redis is not None:
            try:
                cached = await self._redis.get(self._cache_key(order_id))
                if cached:
                    return OrderRecord.model_validate_json(cached)
            except Exception as exc:  # pragma: no cover - cache failure
                logger.warning("Redis lookup failed for order %s: %s", order_id, exc)

        async with self._sessionmaker() as session:
            order = await session.get(Order, order_id)
            if order is None:
                return None
            record = OrderRecord.model_validate(order)

        await self._cache(record)
        return record

    async def find_by_transaction_id(self, transaction_id: str) -> Optional[OrderRecord]:
        async with self._sessionmaker() as session:
            result = await session.execute(
                select(Order)
                .where(Order.transaction_id == transaction_id)
                .order_by(Order.order_id)
                .limit(1)
            )
            order = result.scalars().first()
            if order is None:
                return None
            return OrderRecord.model_validate(order)

    async def set_transaction_id(self, order_id: int, transaction_id: str) -> OrderRecord:
        async with self._sessionmaker() as session:
            order = await self._load(session, order_id)
            order.transaction_id = transaction_id
            await session.flush()
            record = OrderRecord.model_validate(order)
            await session.commit()

        await self._cache(record)
        return record

    async def mark_paid(self, order_id: int, note: Optional[str] = None) -> OrderRecord:
        async with self._sessionmaker() as session:
            order = await self._load(session, order_id)
            if OrderStatus(order.status) in PAID_STATUSES:
                logger.info("Order %s already paid (%s)", order_id, order.status)
                return OrderRecord.model_validate(order)

            order.status = OrderStatus.PROCESSING.value
            order.paid_at = datetime.now(timezone.utc)
            if note:
                order.notes.append(OrderNote(note=note))
            await session.flush()
            record = OrderRecord.model_validate(order)
            await session.commit()

        logger.info("Order %s marked paid", order_id)
        await self._cache(record)
        return record

    async def update_status(
        self, order_id: int, status: OrderStatus, note: Optional[str] = None
    ) -> OrderRecord:
        async with self._sessionmaker() as session:
            order = await self._load(session, order_id)
            previous = order.status
            if previous == status.value:
                return OrderRecord.model_validate(order)

            order.status = status.value
            if note:
                order.notes.append(OrderNote(note=note))
            await session.flush()
            record = OrderRecord.model_validate(order)
            await session.commit()

        logger.info("Order %s: %s -> %s", order_id, previous, status.value)
        await self._cache(record)
        return record

    async def add_note(self, order_id: int, note: str) -> OrderRecord:
        async with self._sessionmaker() as session:
            order = await self._load(session, order_id)
            order.notes.append(OrderNote(note=note))
            await session.flush()
            record = OrderRecord.model_validate(order)
            await session.commit()

        await self._cache(record)
        return record
