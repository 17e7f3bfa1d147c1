"""Allocation bounded context — Store Network Fulfillment.

Decides which stores ship which quantities of an order, tracks each
per-store shipment ("split order") through its delivery lifecycle, and keeps
the buyer-facing hybrid stock figure consistent with the inventory feed.
Uses CQRS: split orders and stock records are plain aggregates, the
operator board is a projection.
"""

from protean.domain import Domain

from allocation.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
allocation = Domain(name="allocation")
