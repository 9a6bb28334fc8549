"""Deterministic in-memory order store.

This is the only component allowed to hold order state. It is mutated
exclusively through :class:`~pycourier.coordinator.OrderCoordinator`.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from pycourier.ingestion.orders import OrdersPage
from pycourier.models.order import DeliveryStatus, Order
from pycourier.state.events import MutationKind, OptimisticMutation, OrdersSnapshot
from pycourier.state.policy import overlay_status, survives_refresh


def _utcnow() -> datetime:
    return datetime.now(UTC)


class OrderStore:
    """Confirmed orders plus optimistic overlays.

    Confirmed state only ever comes from a REST snapshot or a
    server-acknowledged status update. Optimistic overlays (accept,
    reject, navigation intent) are kept apart and reconciled when the
    next snapshot is applied.
    """

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._ongoing: dict[str, Order] = {}
        self._history: dict[str, Order] = {}
        self._incoming: dict[str, datetime] = {}
        self._answered: set[str] = set()
        self._optimistic: dict[str, OptimisticMutation] = {}
        self._just_accepted_id: str | None = None
        self._sequence = 0

    # ------------------------------------------------------------------
    # Confirmed state
    # ------------------------------------------------------------------

    def replace(self, page: OrdersPage, *, sequence: int) -> None:
        """Atomically replace the order view with a fetched page."""
        ongoing = {order.id: order for order in page.ongoing}
        history = {order.id: order for order in page.history}
        for order_id in history:
            ongoing.pop(order_id, None)

        reconciled: dict[str, OptimisticMutation] = {}
        for order_id, mutation in self._optimistic.items():
            if survives_refresh(mutation, ongoing.get(order_id)):
                reconciled[order_id] = mutation

        # A staged request waits for the driver until the order is finished.
        incoming = {oid: at for oid, at in self._incoming.items() if oid not in history}

        self._ongoing = ongoing
        self._history = history
        self._optimistic = reconciled
        self._incoming = incoming
        self._sequence = sequence

    def apply_confirmed_status(self, order_id: str, status: DeliveryStatus) -> Order | None:
        """Record a server-acknowledged status change.

        Terminal statuses move the order from ongoing to history.
        """
        order = self._ongoing.get(order_id)
        if order is None:
            return None
        updated = order.with_status(status, at=self._clock())
        self._optimistic.pop(order_id, None)
        if updated.is_terminal:
            del self._ongoing[order_id]
            self._history[order_id] = updated
        else:
            self._ongoing[order_id] = updated
        return updated

    # ------------------------------------------------------------------
    # Optimistic state
    # ------------------------------------------------------------------

    def apply_optimistic(self, mutation: OptimisticMutation) -> None:
        self._optimistic[mutation.order_id] = mutation
        if mutation.kind in (MutationKind.ACCEPTED, MutationKind.REJECTED):
            self._incoming.pop(mutation.order_id, None)
            self._answered.add(mutation.order_id)
        if mutation.kind == MutationKind.ACCEPTED:
            self._just_accepted_id = mutation.order_id

    def stage_incoming(self, order_id: str) -> bool:
        """Stage an order request awaiting the driver's decision.

        Returns ``False`` if it is already staged or already answered. An
        order the server already lists is still staged: the driver has not
        answered it yet.
        """
        if order_id in self._incoming or order_id in self._answered:
            return False
        self._incoming[order_id] = self._clock()
        return True

    def mark_just_accepted(self, order_id: str) -> None:
        self._just_accepted_id = order_id

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _present(self, order: Order) -> Order:
        mutation = self._optimistic.get(order.id)
        if mutation is None:
            return order
        status = overlay_status(mutation)
        if status is None:
            return order
        return order.with_status(status, at=mutation.applied_at)

    def get(self, order_id: str) -> Order | None:
        order = self._ongoing.get(order_id) or self._history.get(order_id)
        return self._present(order) if order is not None else None

    def is_answered(self, order_id: str) -> bool:
        return order_id in self._answered

    def optimistic(self, order_id: str) -> OptimisticMutation | None:
        return self._optimistic.get(order_id)

    @property
    def sequence(self) -> int:
        return self._sequence

    def snapshot(self, *, pending: frozenset[str] = frozenset()) -> OrdersSnapshot:
        return OrdersSnapshot(
            ongoing=tuple(self._present(order) for order in self._ongoing.values()),
            history=tuple(self._history.values()),
            incoming=tuple(self._incoming),
            just_accepted_id=self._just_accepted_id,
            pending_transitions=pending,
            sequence=self._sequence,
        )

    def clear(self) -> None:
        self._ongoing.clear()
        self._history.clear()
        self._incoming.clear()
        self._answered.clear()
        self._optimistic.clear()
        self._just_accepted_id = None
        self._sequence = 0
