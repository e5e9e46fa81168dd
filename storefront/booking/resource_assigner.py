"""
First-fit table assignment for a party size.

Customers never pick a table themselves: the first active table, in the
order the API listed them, that seats the whole party is attached to the
booking. No sorting by capacity is applied.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from storefront.schemas.business_schema import Resource

logger = logging.getLogger(__name__)


class NoResourceAvailable(Exception):
    """No table can seat the requested party."""

    def __init__(self, party_size: int) -> None:
        self.party_size = party_size
        super().__init__(no_resource_message(party_size))


def no_resource_message(party_size: int) -> str:
    return f"No table available for a party of {party_size}"


def eligible_resources(resources: Sequence[Resource], party_size: int) -> list[Resource]:
    """Active resources that seat ``party_size``, in upstream order."""
    return [r for r in resources if r.is_active and r.seats >= party_size]


@dataclass(frozen=True)
class ResourceAssignment:
    """Outcome of assigning a table for one party size."""
    party_size: int
    resource: Optional[Resource] = None
    eligible: tuple[Resource, ...] = field(default_factory=tuple)

    @property
    def available(self) -> bool:
        return self.resource is not None

    @property
    def resource_id(self) -> Optional[str]:
        return self.resource.id if self.resource else None

    @property
    def message(self) -> Optional[str]:
        """User-facing guidance when nothing fits, else None."""
        if self.available:
            return None
        return no_resource_message(self.party_size)

    def require(self) -> Resource:
        """Return the assigned resource or raise NoResourceAvailable."""
        if self.resource is None:
            raise NoResourceAvailable(self.party_size)
        return self.resource


def assign_resource(resources: Sequence[Resource], party_size: int) -> ResourceAssignment:
    """Pick the first resource seating ``party_size``.

    Raises:
        ValueError: If ``party_size`` is not a positive integer.
    """
    if party_size < 1:
        raise ValueError(f"Party size must be >= 1, got {party_size}")
    eligible = eligible_resources(resources, party_size)
    chosen = eligible[0] if eligible else None
    if chosen is None:
        logger.info("No resource seats a party of %d (%d listed)", party_size, len(resources))
    else:
        logger.debug("Assigned resource %s (%d seats) to party of %d",
                     chosen.code, chosen.seats, party_size)
    return ResourceAssignment(party_size=party_size, resource=chosen, eligible=tuple(eligible))
