"""Values exchanged between the store, the coordinator and subscribers."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from pycourier.models.order import DeliveryStatus, Order


class MutationKind(StrEnum):
    """Local changes applied ahead of server confirmation."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"
    NAVIGATING = "navigating"


class OptimisticMutation(BaseModel):
    """A local overlay awaiting reconciliation by the next refresh.

    ``base_status`` is the server status the overlay was applied on top
    of; overlays that change a status stay valid only while the server
    still reports it.
    """

    model_config = ConfigDict(frozen=True)

    order_id: str
    kind: MutationKind
    base_status: DeliveryStatus | None = None
    applied_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class OrdersSnapshot(BaseModel):
    """Consistent view of every order the driver can see.

    Delivered to subscribers after each mutation; never partially
    updated.
    """

    model_config = ConfigDict(frozen=True)

    ongoing: tuple[Order, ...] = ()
    history: tuple[Order, ...] = ()
    incoming: tuple[str, ...] = ()
    just_accepted_id: str | None = None
    pending_transitions: frozenset[str] = frozenset()
    sequence: int = 0

    def find(self, order_id: str) -> Order | None:
        for order in (*self.ongoing, *self.history):
            if order.id == order_id:
                return order
        return None
