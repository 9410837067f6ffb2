"""Lockable resource identifiers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ResourceIdentifier:
    """
    Identifies a single-writer resource, one per aggregate instance.

    Examples:
        >>> ResourceIdentifier("Order", "5f0c...")
        >>> ResourceIdentifier("SeatsAvailability", conference_id)
    """

    resource_type: str
    resource_id: str

    def __lt__(self, other: ResourceIdentifier) -> bool:
        # Deterministic acquisition order when several resources are held.
        return (self.resource_type, self.resource_id) < (
            other.resource_type,
            other.resource_id,
        )

    def __str__(self) -> str:
        return f"{self.resource_type}:{self.resource_id}"
