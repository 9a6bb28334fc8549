"""Reconciliation policy for optimistic overlays.

Contains no I/O and no payload parsing; the store calls these after a
refresh has been accepted.
"""

from __future__ import annotations

from pycourier.models.order import DeliveryStatus, Order
from pycourier.state.events import MutationKind, OptimisticMutation


def survives_refresh(mutation: OptimisticMutation, server_order: Order | None) -> bool:
    """Decide whether an overlay is still meaningful after a refresh.

    - accept/reject overlays are resolved by any accepted refresh: the
      server's listing is now the truth.
    - a navigation overlay stays while the server still reports the
      status it was applied on (the backend never tracks that step).
    """
    if mutation.kind in (MutationKind.ACCEPTED, MutationKind.REJECTED):
        return False
    if server_order is None:
        return False
    return server_order.delivery_status == mutation.base_status


def overlay_status(mutation: OptimisticMutation) -> DeliveryStatus | None:
    """Status an overlay presents for its order, if it changes one."""
    if mutation.kind == MutationKind.NAVIGATING:
        return DeliveryStatus.NAVIGATING_CUSTOMER
    return None
