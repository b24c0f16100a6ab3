"""Bookable resources and the registry contract.

Resources are written by the fleet management side (admin dashboard); the
scheduling core only reads a snapshot at the moment it decides.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from rentaly.domain.pricing import to_decimal


@dataclass(frozen=True)
class Resource:
    """A bookable unit (a vehicle).

    Attributes:
        id: Opaque unique identifier.
        day_rate: Price per billable day, strictly positive. Kept at full
            precision; only computed totals are rounded.
        available: Whether new reservations may be admitted.
        label: Optional display name for rejection messages.
    """

    id: str
    day_rate: Decimal
    available: bool = True
    label: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("resource id must not be empty")
        rate = to_decimal(self.day_rate)
        if rate <= 0:
            raise ValueError(f"day rate must be positive, got {self.day_rate!r}")
        object.__setattr__(self, "day_rate", rate)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "day_rate": str(self.day_rate),
            "available": self.available,
            "label": self.label,
        }


class ResourceRegistry(Protocol):
    """Read-only lookup of resources."""

    def get_resource(self, resource_id: str) -> Resource | None:
        """Return the resource, or None if it does not exist."""
        ...
