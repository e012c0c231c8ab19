"""Checkout bounded context: turns a validated cart into a durable order.

Coordinates stock reservation, payment capture, order persistence and
shipping-label issuance as one saga. Orders and shipping labels are CQRS
aggregates; inventory lives in an in-process ledger of versioned records.
"""

import structlog
from protean.domain import Domain

checkout = Domain(name="checkout")

logger = structlog.get_logger(__name__)
