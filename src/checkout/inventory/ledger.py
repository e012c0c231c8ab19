"""Inventory ledger: per-product stock records shared by concurrent checkouts.

Stock Level Model:
    on_hand:   Physical count that can still be sold or shipped
    reserved:  Held for checkouts whose payment has not settled
    available: on_hand - reserved (what a new reservation may take)

Each product owns one slot in an arena. A slot holds an immutable
``StockRecord`` plus a lock that is held only for the compare-and-swap
instant. Updates read the current record, compute the next one and swap it in
only if the version did not move; conflicts retry a bounded number of times.
Unrelated products never contend with each other.

When a ``stock_source`` is given, a product's record is seeded from it the
first time the product is touched, so the ledger follows the catalog's stock
without an explicit ``seed`` call.

Reservation lifecycle:
    ACTIVE → CONFIRMED (stock permanently decremented)
    ACTIVE → RELEASED (returned to available) | EXPIRED (released by the sweep)

Retired reservations are kept for ``retired_retention`` so late reconciliation
can still look them up, then dropped by the expiry sweep.
"""

import threading
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from enum import Enum
from uuid import uuid4

import structlog

from checkout.errors import InsufficientStockError, ReservationReleasedError, StockContentionError

logger = structlog.get_logger(__name__)

DEFAULT_RESERVATION_TTL = timedelta(minutes=15)
DEFAULT_CAS_ATTEMPTS = 8
DEFAULT_RETIRED_RETENTION = timedelta(days=7)


class ReservationStatus(Enum):
    ACTIVE = "Active"
    CONFIRMED = "Confirmed"
    RELEASED = "Released"
    EXPIRED = "Expired"


@dataclass(frozen=True)
class StockRecord:
    product_id: str
    on_hand: int = 0
    reserved: int = 0
    version: int = 0

    @property
    def available(self) -> int:
        return self.on_hand - self.reserved


@dataclass(frozen=True)
class ReservationToken:
    """Opaque handle on a set of holds; owned by the checkout that created it."""

    token_id: str
    lines: tuple[tuple[str, int], ...]
    expires_at: datetime


class _Slot:
    __slots__ = ("record", "swap_lock")

    def __init__(self, record: StockRecord) -> None:
        self.record = record
        self.swap_lock = threading.Lock()


@dataclass
class _TokenState:
    token: ReservationToken
    status: ReservationStatus
    expires_at: datetime
    retired_at: datetime | None = None


class InventoryLedger:
    def __init__(
        self,
        max_attempts: int = DEFAULT_CAS_ATTEMPTS,
        reservation_ttl: timedelta = DEFAULT_RESERVATION_TTL,
        retired_retention: timedelta = DEFAULT_RETIRED_RETENTION,
        stock_source=None,
    ) -> None:
        self.max_attempts = max_attempts
        self.reservation_ttl = reservation_ttl
        self.retired_retention = retired_retention
        self.stock_source = stock_source
        self._slots: dict[str, _Slot] = {}
        self._arena_lock = threading.Lock()  # guards arena growth only
        self._tokens: dict[str, _TokenState] = {}
        self._tokens_lock = threading.Lock()  # guards token status transitions only

    # -------------------------------------------------------------------
    # Arena management
    # -------------------------------------------------------------------
    def seed(self, product_id: str, on_hand: int) -> StockRecord:
        """Set the physical count for a product, keeping existing holds."""
        if on_hand < 0:
            raise ValueError("on_hand must not be negative")
        slot = self._slot(product_id)

        def mutate(record: StockRecord) -> StockRecord:
            if on_hand < record.reserved:
                raise ValueError(f"Cannot set on_hand below the {record.reserved} unit(s) reserved for {product_id}")
            return replace(record, on_hand=on_hand)

        return self._update(product_id, mutate, slot=slot)

    def restock(self, product_id: str, quantity: int) -> StockRecord:
        if quantity <= 0:
            raise ValueError("Quantity must be positive")
        return self._update(
            product_id,
            lambda record: replace(record, on_hand=record.on_hand + quantity),
            slot=self._slot(product_id),
        )

    def record(self, product_id: str) -> StockRecord:
        slot = self._slots.get(product_id)
        return slot.record if slot is not None else StockRecord(product_id=product_id)

    def stock_levels(self) -> dict[str, StockRecord]:
        return {product_id: slot.record for product_id, slot in list(self._slots.items())}

    def compare_and_swap(self, product_id: str, expected: StockRecord, new: StockRecord) -> bool:
        """Install ``new`` only if the slot still holds ``expected``'s version."""
        slot = self._slots[product_id]
        with slot.swap_lock:
            if slot.record.version != expected.version:
                return False
            slot.record = replace(new, version=expected.version + 1)
            return True

    # -------------------------------------------------------------------
    # Reservations
    # -------------------------------------------------------------------
    def reserve(self, items, ttl: timedelta | None = None, now: datetime | None = None) -> ReservationToken:
        """Hold stock for every line or for none of them.

        ``items`` is an iterable of ``(product_id, quantity)``; duplicate
        products are merged into one line.
        """
        lines = self._merge_lines(items)
        committed: list[tuple[str, int]] = []
        try:
            for product_id, quantity in lines:
                self._update(product_id, self._hold(product_id, quantity))
                committed.append((product_id, quantity))
        except (InsufficientStockError, StockContentionError):
            self._return_holds(committed)
            raise

        now = now or datetime.now(UTC)
        token = ReservationToken(
            token_id=str(uuid4()),
            lines=tuple(lines),
            expires_at=now + (ttl or self.reservation_ttl),
        )
        with self._tokens_lock:
            self._tokens[token.token_id] = _TokenState(
                token=token,
                status=ReservationStatus.ACTIVE,
                expires_at=token.expires_at,
            )
        logger.info("Stock reserved", reservation_id=token.token_id, lines=len(lines))
        return token

    def confirm(self, token: ReservationToken) -> None:
        """Turn the holds into a permanent decrement of on-hand stock."""
        with self._tokens_lock:
            state = self._state(token)
            if state.status == ReservationStatus.CONFIRMED:
                return
            if state.status != ReservationStatus.ACTIVE:
                raise ReservationReleasedError(reservation_id=token.token_id, status=state.status.value)
            state.status = ReservationStatus.CONFIRMED
            state.retired_at = datetime.now(UTC)

        for product_id, quantity in state.token.lines:
            self._update(
                product_id,
                lambda record, qty=quantity: replace(
                    record,
                    on_hand=record.on_hand - qty,
                    reserved=record.reserved - qty,
                ),
            )
        logger.info("Reservation confirmed", reservation_id=token.token_id)

    def release(self, token: ReservationToken, reason: str = "released") -> None:
        """Return held stock to available. Safe on released or confirmed tokens."""
        self._retire(token, ReservationStatus.RELEASED, reason)

    def extend(self, token: ReservationToken, expires_at: datetime) -> None:
        """Push an active hold's expiry out, e.g. while a payment is pending."""
        with self._tokens_lock:
            state = self._state(token)
            if state.status != ReservationStatus.ACTIVE:
                raise ReservationReleasedError(reservation_id=token.token_id, status=state.status.value)
            state.expires_at = max(state.expires_at, expires_at)

    def expire_stale(self, now: datetime | None = None) -> int:
        """Release every active reservation whose hold has run out.

        Also forgets reservations retired more than ``retired_retention`` ago.
        """
        now = now or datetime.now(UTC)
        with self._tokens_lock:
            stale = [
                state.token
                for state in self._tokens.values()
                if state.status == ReservationStatus.ACTIVE and state.expires_at <= now
            ]

        expired = 0
        for token in stale:
            if self._retire(token, ReservationStatus.EXPIRED, "expired", now=now):
                expired += 1
        if expired:
            logger.info("Expired stale reservations", count=expired)
        self._prune_retired(now)
        return expired

    def status_of(self, token: ReservationToken) -> ReservationStatus:
        with self._tokens_lock:
            return self._state(token).status

    def find(self, token_id: str) -> ReservationToken | None:
        with self._tokens_lock:
            state = self._tokens.get(token_id)
            return state.token if state else None

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _slot(self, product_id: str) -> _Slot:
        slot = self._slots.get(product_id)
        if slot is None:
            on_hand = self._initial_stock(product_id)
            with self._arena_lock:
                slot = self._slots.setdefault(product_id, _Slot(StockRecord(product_id=product_id, on_hand=on_hand)))
        return slot

    def _initial_stock(self, product_id: str) -> int:
        if self.stock_source is None:
            return 0
        on_hand = self.stock_source(product_id) or 0
        if on_hand:
            logger.info("Stock record seeded", product_id=product_id, on_hand=on_hand)
        return max(int(on_hand), 0)

    def _state(self, token: ReservationToken) -> _TokenState:
        state = self._tokens.get(token.token_id)
        if state is None:
            raise KeyError(f"Unknown reservation {token.token_id}")
        return state

    def _update(self, product_id: str, mutate, slot: _Slot | None = None) -> StockRecord:
        slot = slot or self._slots.get(product_id)
        if slot is None:
            # Nothing was ever stocked: behave like a record with zero on hand
            slot = self._slot(product_id)

        for _ in range(self.max_attempts):
            current = slot.record
            proposed = mutate(current)
            if self.compare_and_swap(product_id, current, proposed):
                return slot.record

        logger.warning("Stock update contention", product_id=product_id, attempts=self.max_attempts)
        raise StockContentionError(product_id=product_id, attempts=self.max_attempts)

    @staticmethod
    def _hold(product_id: str, quantity: int):
        def mutate(record: StockRecord) -> StockRecord:
            if record.available < quantity:
                raise InsufficientStockError(product_id, quantity, record.available)
            return replace(record, reserved=record.reserved + quantity)

        return mutate

    def _return_holds(self, lines) -> None:
        for product_id, quantity in lines:
            self._update(
                product_id,
                lambda record, qty=quantity: replace(record, reserved=record.reserved - qty),
            )

    def _retire(self, token: ReservationToken, target: ReservationStatus, reason: str, now=None) -> bool:
        with self._tokens_lock:
            state = self._tokens.get(token.token_id)
            # Unknown tokens were retired and pruned long ago
            if state is None or state.status != ReservationStatus.ACTIVE:
                return False
            state.status = target
            state.retired_at = now or datetime.now(UTC)

        self._return_holds(state.token.lines)
        logger.info(
            "Reservation released",
            reservation_id=token.token_id,
            status=target.value,
            reason=reason,
        )
        return True

    def _prune_retired(self, now: datetime) -> None:
        cutoff = now - self.retired_retention
        with self._tokens_lock:
            retired = [
                token_id
                for token_id, state in self._tokens.items()
                if state.retired_at is not None and state.retired_at <= cutoff
            ]
            for token_id in retired:
                del self._tokens[token_id]
        if retired:
            logger.debug("Pruned retired reservations", count=len(retired))

    @staticmethod
    def _merge_lines(items) -> list[tuple[str, int]]:
        merged: dict[str, int] = {}
        for product_id, quantity in items:
            if quantity <= 0:
                raise ValueError(f"Quantity for {product_id} must be positive")
            merged[str(product_id)] = merged.get(str(product_id), 0) + int(quantity)
        if not merged:
            raise ValueError("Nothing to reserve")
        return list(merged.items())
