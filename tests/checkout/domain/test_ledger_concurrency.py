"""Concurrent reservations never oversell a product."""

import threading

import pytest

from checkout.errors import InsufficientStockError
from checkout.inventory.ledger import InventoryLedger


def _race(ledger, requests):
    barrier = threading.Barrier(len(requests))
    outcomes = [None] * len(requests)

    def worker(index, lines):
        barrier.wait()
        try:
            outcomes[index] = ledger.reserve(lines)
        except InsufficientStockError as exc:
            outcomes[index] = exc

    threads = [threading.Thread(target=worker, args=(i, lines)) for i, lines in enumerate(requests)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return outcomes


class TestConcurrentReservations:
    def test_two_reservations_of_three_against_five(self):
        ledger = InventoryLedger(max_attempts=100)
        ledger.seed("X", 5)

        outcomes = _race(ledger, [[("X", 3)], [("X", 3)]])

        failures = [o for o in outcomes if isinstance(o, InsufficientStockError)]
        assert len(failures) == 1
        assert len(outcomes) - len(failures) == 1
        assert ledger.record("X").available == 2

    @pytest.mark.parametrize("stock,threads,quantity", [(10, 8, 3), (7, 12, 1), (50, 20, 4)])
    def test_admitted_quantity_never_exceeds_stock(self, stock, threads, quantity):
        ledger = InventoryLedger(max_attempts=1000)
        ledger.seed("X", stock)

        outcomes = _race(ledger, [[("X", quantity)] for _ in range(threads)])

        admitted = sum(quantity for o in outcomes if not isinstance(o, Exception))
        record = ledger.record("X")
        assert admitted <= stock
        assert admitted == stock - stock % quantity or admitted == quantity * threads
        assert record.reserved == admitted
        assert 0 <= record.reserved <= record.on_hand

    def test_unrelated_products_do_not_interfere(self):
        ledger = InventoryLedger(max_attempts=1000)
        for index in range(8):
            ledger.seed(f"P{index}", 1)

        outcomes = _race(ledger, [[(f"P{index}", 1)] for index in range(8)])

        assert not any(isinstance(o, Exception) for o in outcomes)
        assert all(ledger.record(f"P{index}").available == 0 for index in range(8))

    def test_multi_line_failures_leave_no_partial_holds(self):
        ledger = InventoryLedger(max_attempts=1000)
        ledger.seed("A", 3)
        ledger.seed("B", 3)

        outcomes = _race(ledger, [[("A", 2), ("B", 2)] for _ in range(4)])

        admitted = [o for o in outcomes if not isinstance(o, Exception)]
        assert len(admitted) == 1
        assert ledger.record("A").reserved == 2
        assert ledger.record("B").reserved == 2
