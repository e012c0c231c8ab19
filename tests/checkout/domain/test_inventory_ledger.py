"""Tests for InventoryLedger reserve / confirm / release semantics."""

from datetime import UTC, datetime, timedelta

import pytest

from checkout.errors import InsufficientStockError, ReservationReleasedError, StockContentionError
from checkout.inventory.ledger import InventoryLedger, ReservationStatus, StockRecord


@pytest.fixture
def stocked_ledger():
    ledger = InventoryLedger()
    ledger.seed("sku-x", 5)
    ledger.seed("sku-y", 10)
    return ledger


class TestStockRecord:
    def test_available_is_on_hand_minus_reserved(self):
        record = StockRecord(product_id="p", on_hand=10, reserved=3)
        assert record.available == 7

    def test_unknown_product_has_no_stock(self):
        record = InventoryLedger().record("missing")
        assert record.on_hand == 0
        assert record.available == 0


class TestSeedAndRestock:
    def test_seed_sets_on_hand(self, stocked_ledger):
        assert stocked_ledger.record("sku-x").on_hand == 5

    def test_seed_bumps_version(self, stocked_ledger):
        before = stocked_ledger.record("sku-x").version
        stocked_ledger.seed("sku-x", 7)
        assert stocked_ledger.record("sku-x").version == before + 1

    def test_seed_below_reserved_rejected(self, stocked_ledger):
        stocked_ledger.reserve([("sku-x", 4)])
        with pytest.raises(ValueError):
            stocked_ledger.seed("sku-x", 3)

    def test_negative_seed_rejected(self):
        with pytest.raises(ValueError):
            InventoryLedger().seed("p", -1)

    def test_restock_adds_to_on_hand(self, stocked_ledger):
        stocked_ledger.restock("sku-x", 3)
        assert stocked_ledger.record("sku-x").on_hand == 8

    def test_restock_requires_positive_quantity(self, stocked_ledger):
        with pytest.raises(ValueError):
            stocked_ledger.restock("sku-x", 0)


class TestReserve:
    def test_moves_quantity_to_reserved(self, stocked_ledger):
        stocked_ledger.reserve([("sku-x", 3)])
        record = stocked_ledger.record("sku-x")
        assert record.reserved == 3
        assert record.on_hand == 5
        assert record.available == 2

    def test_token_lists_lines_and_expiry(self, stocked_ledger):
        now = datetime(2026, 1, 1, tzinfo=UTC)
        token = stocked_ledger.reserve([("sku-x", 1), ("sku-y", 2)], ttl=timedelta(minutes=5), now=now)
        assert token.lines == (("sku-x", 1), ("sku-y", 2))
        assert token.expires_at == now + timedelta(minutes=5)
        assert stocked_ledger.status_of(token) == ReservationStatus.ACTIVE

    def test_duplicate_lines_are_merged(self, stocked_ledger):
        token = stocked_ledger.reserve([("sku-x", 1), ("sku-x", 2)])
        assert token.lines == (("sku-x", 3),)
        assert stocked_ledger.record("sku-x").reserved == 3

    def test_insufficient_stock_names_product(self, stocked_ledger):
        with pytest.raises(InsufficientStockError) as exc:
            stocked_ledger.reserve([("sku-x", 6)])
        assert exc.value.product_id == "sku-x"
        assert exc.value.requested == 6
        assert exc.value.available == 5

    def test_unknown_product_is_insufficient(self, stocked_ledger):
        with pytest.raises(InsufficientStockError) as exc:
            stocked_ledger.reserve([("ghost", 1)])
        assert exc.value.available == 0

    def test_failed_line_rolls_back_earlier_lines(self, stocked_ledger):
        with pytest.raises(InsufficientStockError):
            stocked_ledger.reserve([("sku-y", 4), ("sku-x", 9)])
        assert stocked_ledger.record("sku-y").reserved == 0
        assert stocked_ledger.record("sku-x").reserved == 0

    def test_zero_quantity_rejected(self, stocked_ledger):
        with pytest.raises(ValueError):
            stocked_ledger.reserve([("sku-x", 0)])

    def test_empty_reservation_rejected(self, stocked_ledger):
        with pytest.raises(ValueError):
            stocked_ledger.reserve([])


class TestConfirm:
    def test_decrements_on_hand_and_reserved(self, stocked_ledger):
        token = stocked_ledger.reserve([("sku-x", 3)])
        stocked_ledger.confirm(token)
        record = stocked_ledger.record("sku-x")
        assert record.on_hand == 2
        assert record.reserved == 0
        assert stocked_ledger.status_of(token) == ReservationStatus.CONFIRMED

    def test_confirm_twice_is_a_no_op(self, stocked_ledger):
        token = stocked_ledger.reserve([("sku-x", 3)])
        stocked_ledger.confirm(token)
        stocked_ledger.confirm(token)
        assert stocked_ledger.record("sku-x").on_hand == 2

    def test_confirm_after_release_rejected(self, stocked_ledger):
        token = stocked_ledger.reserve([("sku-x", 3)])
        stocked_ledger.release(token)
        with pytest.raises(ReservationReleasedError):
            stocked_ledger.confirm(token)


class TestRelease:
    def test_reserve_then_release_restores_counters(self, stocked_ledger):
        before = {pid: (r.on_hand, r.reserved) for pid, r in stocked_ledger.stock_levels().items()}
        token = stocked_ledger.reserve([("sku-x", 2), ("sku-y", 7)])
        stocked_ledger.release(token)
        after = {pid: (r.on_hand, r.reserved) for pid, r in stocked_ledger.stock_levels().items()}
        assert after == before

    def test_release_twice_is_a_no_op(self, stocked_ledger):
        token = stocked_ledger.reserve([("sku-x", 2)])
        stocked_ledger.release(token)
        stocked_ledger.release(token)
        assert stocked_ledger.record("sku-x").reserved == 0
        assert stocked_ledger.record("sku-x").available == 5

    def test_release_after_confirm_keeps_decrement(self, stocked_ledger):
        token = stocked_ledger.reserve([("sku-x", 2)])
        stocked_ledger.confirm(token)
        stocked_ledger.release(token)
        record = stocked_ledger.record("sku-x")
        assert record.on_hand == 3
        assert record.reserved == 0
        assert stocked_ledger.status_of(token) == ReservationStatus.CONFIRMED


class TestExpiry:
    def test_expire_stale_releases_lapsed_tokens(self, stocked_ledger):
        now = datetime(2026, 1, 1, tzinfo=UTC)
        token = stocked_ledger.reserve([("sku-x", 2)], ttl=timedelta(minutes=15), now=now)

        assert stocked_ledger.expire_stale(now + timedelta(minutes=14)) == 0
        assert stocked_ledger.expire_stale(now + timedelta(minutes=15)) == 1
        assert stocked_ledger.status_of(token) == ReservationStatus.EXPIRED
        assert stocked_ledger.record("sku-x").reserved == 0

    def test_extend_postpones_expiry(self, stocked_ledger):
        now = datetime(2026, 1, 1, tzinfo=UTC)
        token = stocked_ledger.reserve([("sku-x", 2)], ttl=timedelta(minutes=15), now=now)
        stocked_ledger.extend(token, now + timedelta(hours=72))

        assert stocked_ledger.expire_stale(now + timedelta(hours=1)) == 0
        assert stocked_ledger.status_of(token) == ReservationStatus.ACTIVE

    def test_extend_released_token_rejected(self, stocked_ledger):
        token = stocked_ledger.reserve([("sku-x", 2)])
        stocked_ledger.release(token)
        with pytest.raises(ReservationReleasedError):
            stocked_ledger.extend(token, datetime.now(UTC) + timedelta(hours=1))

    def test_confirmed_tokens_never_expire(self, stocked_ledger):
        now = datetime(2026, 1, 1, tzinfo=UTC)
        token = stocked_ledger.reserve([("sku-x", 2)], ttl=timedelta(minutes=1), now=now)
        stocked_ledger.confirm(token)
        assert stocked_ledger.expire_stale(now + timedelta(days=1)) == 0
        assert stocked_ledger.record("sku-x").on_hand == 3


class TestRetiredTokens:
    def test_retired_tokens_are_kept_for_the_retention_window(self, stocked_ledger):
        now = datetime(2026, 1, 1, tzinfo=UTC)
        token = stocked_ledger.reserve([("sku-x", 2)], ttl=timedelta(minutes=15), now=now)
        stocked_ledger.expire_stale(now + timedelta(minutes=15))

        stocked_ledger.expire_stale(now + timedelta(days=6))
        assert stocked_ledger.find(token.token_id) == token

    def test_retired_tokens_are_forgotten_after_retention(self, stocked_ledger):
        now = datetime(2026, 1, 1, tzinfo=UTC)
        token = stocked_ledger.reserve([("sku-x", 2)], ttl=timedelta(minutes=15), now=now)
        stocked_ledger.expire_stale(now + timedelta(minutes=15))

        stocked_ledger.expire_stale(now + timedelta(days=8))
        assert stocked_ledger.find(token.token_id) is None
        assert len(stocked_ledger._tokens) == 0

    def test_releasing_a_forgotten_token_is_a_no_op(self, stocked_ledger):
        now = datetime(2026, 1, 1, tzinfo=UTC)
        token = stocked_ledger.reserve([("sku-x", 2)], ttl=timedelta(minutes=15), now=now)
        stocked_ledger.expire_stale(now + timedelta(minutes=15))
        stocked_ledger.expire_stale(now + timedelta(days=8))

        stocked_ledger.release(token)
        assert stocked_ledger.record("sku-x").reserved == 0
        assert stocked_ledger.record("sku-x").on_hand == 5

    def test_active_tokens_are_never_pruned(self, stocked_ledger):
        now = datetime(2026, 1, 1, tzinfo=UTC)
        token = stocked_ledger.reserve([("sku-x", 2)], ttl=timedelta(minutes=15), now=now)
        stocked_ledger.extend(token, now + timedelta(days=30))

        stocked_ledger.expire_stale(now + timedelta(days=10))
        assert stocked_ledger.status_of(token) == ReservationStatus.ACTIVE


class TestStockSource:
    def test_first_touch_seeds_from_source(self):
        ledger = InventoryLedger(stock_source={"sku-z": 4}.get)
        ledger.reserve([("sku-z", 3)])
        record = ledger.record("sku-z")
        assert record.on_hand == 4
        assert record.available == 1

    def test_source_is_read_once(self):
        calls = []

        def source(product_id):
            calls.append(product_id)
            return 2

        ledger = InventoryLedger(stock_source=source)
        ledger.record("sku-z")
        ledger.reserve([("sku-z", 1)])
        assert calls == ["sku-z"]

    def test_unknown_to_source_has_no_stock(self):
        ledger = InventoryLedger(stock_source={}.get)
        with pytest.raises(InsufficientStockError):
            ledger.reserve([("sku-z", 1)])

    def test_explicit_seed_wins(self):
        ledger = InventoryLedger(stock_source={"sku-z": 4}.get)
        ledger.seed("sku-z", 9)
        assert ledger.record("sku-z").on_hand == 9


class TestFind:
    def test_find_returns_token_by_id(self, stocked_ledger):
        token = stocked_ledger.reserve([("sku-x", 1)])
        assert stocked_ledger.find(token.token_id) == token

    def test_find_unknown_returns_none(self, stocked_ledger):
        assert stocked_ledger.find("nope") is None


class TestCompareAndSwap:
    def test_stale_version_is_refused(self, stocked_ledger):
        stale = stocked_ledger.record("sku-x")
        stocked_ledger.restock("sku-x", 1)
        assert stocked_ledger.compare_and_swap("sku-x", stale, StockRecord("sku-x", on_hand=100)) is False
        assert stocked_ledger.record("sku-x").on_hand == 6

    def test_persistent_conflict_raises_contention(self, stocked_ledger, monkeypatch):
        monkeypatch.setattr(stocked_ledger, "compare_and_swap", lambda *args: False)
        with pytest.raises(StockContentionError):
            stocked_ledger.reserve([("sku-x", 1)])
