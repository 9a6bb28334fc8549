"""Order state coordinator.

Owns the authoritative in-memory order set, merges REST snapshots with
realtime push signals, drives the delivery status state machine and
fans out change notifications.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from pycourier.exceptions import (
    CourierAuthMissingError,
    CourierChannelError,
    CourierInvalidTransitionError,
    CourierNetworkError,
    CourierTransitionInProgressError,
)
from pycourier.gateway import RestGateway
from pycourier.models.messages import (
    ORDER_EVENT_TYPES,
    ChannelMessage,
    MessageType,
    OrderDecision,
    order_response_message,
)
from pycourier.models.order import DeliveryStatus, Order
from pycourier.state.events import MutationKind, OptimisticMutation, OrdersSnapshot
from pycourier.state.store import OrderStore
from pycourier.state.transitions import TransitionRule, next_transition, validate_transition

_logger = logging.getLogger(__name__)

OrdersListener = Callable[[OrdersSnapshot], None]


class MessageSender(Protocol):
    """The part of the realtime channel the coordinator writes to."""

    @property
    def is_open(self) -> bool: ...

    async def send_json(self, payload: dict[str, Any]) -> None: ...


class MapLauncher(Protocol):
    """Opens an external map app for the client-local navigation step."""

    def __call__(self, order: Order) -> Awaitable[None] | None: ...


class OrderRequestPrompt(Protocol):
    """Asks the driver to accept or reject an incoming order request.

    Returning ``None`` leaves the request staged for a later
    :meth:`OrderCoordinator.respond` call.
    """

    def __call__(self, order_id: str) -> Awaitable[OrderDecision | None]: ...


class OrderCoordinator:
    """Single source of truth for the orders visible to the driver.

    Usage::

        coordinator = OrderCoordinator(gateway, sender=channel)
        unsubscribe = coordinator.subscribe(render)
        await coordinator.refresh()
        await coordinator.advance_status(order_id, DeliveryStatus.CHEF_ARRIVED)
    """

    def __init__(
        self,
        gateway: RestGateway,
        *,
        sender: MessageSender | None = None,
        store: OrderStore | None = None,
        map_launcher: MapLauncher | None = None,
        prompt: OrderRequestPrompt | None = None,
    ) -> None:
        self._gateway = gateway
        self._sender = sender
        self._store = store or OrderStore()
        self._map_launcher = map_launcher
        self._prompt = prompt
        self._listeners: list[OrdersListener] = []
        self._issued_sequence = 0
        self._pending: set[str] = set()
        self._prompt_tasks: set[asyncio.Task[None]] = set()
        self._loading = 0

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def subscribe(self, listener: OrdersListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return _unsubscribe

    @property
    def snapshot(self) -> OrdersSnapshot:
        return self._store.snapshot(pending=frozenset(self._pending))

    @property
    def is_loading(self) -> bool:
        """Whether a refresh is in flight."""
        return self._loading > 0

    def get_order(self, order_id: str) -> Order | None:
        return self._store.get(order_id)

    def next_action(self, order_id: str) -> TransitionRule | None:
        """The transition the UI should offer for *order_id*, if any."""
        order = self._store.get(order_id)
        if order is None:
            return None
        return next_transition(order.delivery_status)

    def attach_sender(self, sender: MessageSender | None) -> None:
        self._sender = sender

    def _notify(self) -> None:
        snapshot = self.snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                _logger.warning("Orders listener failed", exc_info=True)

    def _invalidate_inflight(self) -> None:
        """Make every in-flight refresh stale.

        Used after a confirmed local mutation so a fetch issued before it
        cannot roll it back.
        """
        self._issued_sequence += 1

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh(self, *, raise_errors: bool = False) -> OrdersSnapshot | None:
        """Fetch ongoing + history orders and replace the local view.

        Each call is tagged with a sequence number at issue time. A
        response is applied only if no newer refresh has been issued
        since (last-issued-wins).

        Parameters
        ----------
        raise_errors
            Propagate :class:`CourierAuthMissingError` and
            :class:`CourierNetworkError` instead of logging them. A
            failed refresh never clears known orders either way.

        Returns
        -------
        OrdersSnapshot or None
            The applied snapshot, or ``None`` if the response was stale
            or the fetch failed.
        """
        self._issued_sequence += 1
        sequence = self._issued_sequence
        self._loading += 1
        try:
            page = await self._gateway.fetch_orders()
        except (CourierAuthMissingError, CourierNetworkError):
            if raise_errors:
                raise
            _logger.warning("Order refresh #%d failed; keeping previous orders", sequence, exc_info=True)
            return None
        finally:
            self._loading -= 1

        if sequence != self._issued_sequence:
            _logger.debug("Dropping stale refresh #%d (latest issued #%d)", sequence, self._issued_sequence)
            return None

        self._store.replace(page, sequence=sequence)
        _logger.debug(
            "Refresh #%d applied: ongoing=%d history=%d",
            sequence,
            len(page.ongoing),
            len(page.history),
        )
        self._notify()
        return self.snapshot

    async def fetch_order_detail(self, order_id: str) -> Order:
        """Fetch a single order without touching the local collection."""
        return await self._gateway.fetch_order_detail(order_id)

    # ------------------------------------------------------------------
    # Push events
    # ------------------------------------------------------------------

    async def apply_push_event(self, message: ChannelMessage) -> None:
        """React to a realtime message.

        Push events are invalidation signals: the dispatch server stays
        authoritative, so each order event triggers a refresh.
        """
        kind = message.kind
        if kind not in ORDER_EVENT_TYPES:
            if kind != MessageType.PONG:
                _logger.debug("Ignoring realtime message type=%s", message.type)
            return

        if kind == MessageType.ORDER_ACCEPTED and message.order_id:
            self._store.mark_just_accepted(message.order_id)
            self._notify()
        elif kind == MessageType.ORDER_REQUEST and message.order_id:
            if self._store.stage_incoming(message.order_id):
                self._notify()
                self._surface_prompt(message.order_id)

        await self.refresh()

    def _surface_prompt(self, order_id: str) -> None:
        if self._prompt is None:
            return
        task = asyncio.get_running_loop().create_task(self._prompt_and_respond(order_id))
        self._prompt_tasks.add(task)
        task.add_done_callback(self._prompt_tasks.discard)

    async def _prompt_and_respond(self, order_id: str) -> None:
        assert self._prompt is not None  # noqa: S101
        try:
            decision = await self._prompt(order_id)
            if decision is None or self._store.is_answered(order_id):
                return
            await self.respond(order_id, decision)
        except asyncio.CancelledError:
            raise
        except Exception:
            _logger.warning("Order request prompt for %s failed", order_id, exc_info=True)

    # ------------------------------------------------------------------
    # Driver actions
    # ------------------------------------------------------------------

    async def respond(self, order_id: str, decision: OrderDecision | str) -> None:
        """Send the driver's accept/reject decision over the realtime channel.

        The decision is applied optimistically (the request leaves the
        incoming list; accept also marks it just-accepted) and a refresh
        reconciles with the server afterwards.

        Raises
        ------
        CourierChannelError
            If the channel is not open; nothing is mutated.
        """
        decision = OrderDecision(decision)
        sender = self._sender
        if sender is None or not sender.is_open:
            raise CourierChannelError(f"Cannot {decision.value} order {order_id}: realtime channel is not open")

        await sender.send_json(order_response_message(order_id, decision))
        _logger.debug("Responded %s for order %s", decision.value, order_id)

        kind = MutationKind.ACCEPTED if decision == OrderDecision.ACCEPT else MutationKind.REJECTED
        self._store.apply_optimistic(OptimisticMutation(order_id=order_id, kind=kind))
        self._notify()
        await self.refresh()

    async def advance_status(self, order_id: str, next_status: DeliveryStatus | str) -> Order:
        """Move an order one step forward in the delivery state machine.

        Raises
        ------
        CourierTransitionInProgressError
            A transition for this order is already in flight.
        CourierInvalidTransitionError
            *next_status* is not the successor of the current status.
        CourierNetworkError
            The backend rejected the update; local state is unchanged.
        """
        requested = DeliveryStatus(next_status)
        if order_id in self._pending:
            raise CourierTransitionInProgressError(
                f"Order {order_id}: a status update is already in progress",
                order_id=order_id,
                requested=requested.value,
            )

        order = self._store.get(order_id)
        if order is None:
            raise CourierInvalidTransitionError(
                f"Order {order_id} is not known",
                order_id=order_id,
                current=DeliveryStatus.UNKNOWN.value,
                requested=requested.value,
            )
        rule = validate_transition(order_id, order.delivery_status, requested)

        if rule.client_local:
            return await self._begin_navigation(order)

        self._pending.add(order_id)
        try:
            await self._gateway.update_order_status(order_id, rule.target)
        finally:
            self._pending.discard(order_id)

        updated = self._store.apply_confirmed_status(order_id, rule.target)
        if updated is None:
            # The order left the ongoing set while the request was in flight.
            updated = order.with_status(rule.target)
        self._invalidate_inflight()
        _logger.debug("Order %s moved %s -> %s", order_id, order.delivery_status, rule.target)
        self._notify()
        # Pick up server-derived fields (timestamps, renamed statuses).
        await self.refresh()
        return updated

    async def _begin_navigation(self, order: Order) -> Order:
        self._store.apply_optimistic(
            OptimisticMutation(
                order_id=order.id,
                kind=MutationKind.NAVIGATING,
                base_status=order.delivery_status,
            )
        )
        self._notify()
        if self._map_launcher is not None:
            try:
                result = self._map_launcher(order)
                if result is not None:
                    await result
            except Exception:
                _logger.warning("Could not open maps for order %s", order.id, exc_info=True)
        navigating = self._store.get(order.id)
        assert navigating is not None  # noqa: S101
        return navigating

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Drop all order state (logout)."""
        for task in list(self._prompt_tasks):
            task.cancel()
        self._prompt_tasks.clear()
        self._pending.clear()
        self._invalidate_inflight()
        self._store.clear()
        self._notify()
