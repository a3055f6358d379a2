"""
resources.py — Technician & Subcontractor Registry

Holds the labor resources whose cost rates the labor calculator consults.
Resources are looked up by (kind, id); an id that does not resolve costs
nothing, so a deleted technician degrades a quote's company cost instead of
breaking it.

The default roster lives in quotes/data/resources.yaml (override with
QUOTES_RESOURCES_FILE). Quote-specific subcontractors are merged on top with
``ResourceRegistry.for_quote``.

Usage:
    from quotes.resources import load_registry
    registry = load_registry().for_quote(quote)
    registry.daily_cost("tech-todd", ResourceKind.TECHNICIAN)
"""

import logging
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

import yaml

from quotes import config
from quotes.models import (
    WORK_DAY_HOURS,
    LaborResource,
    Quote,
    ResourceKind,
    InvalidNumberError,
    ResourceRosterError,
    Subcontractor,
    Technician,
    resource_from_dict,
)

logger = logging.getLogger(__name__)


# Cost of one working day, per resource kind
_DAILY_COST = {
    ResourceKind.TECHNICIAN: lambda r: r.cost_rate * WORK_DAY_HOURS,
    ResourceKind.SUBCONTRACTOR: lambda r: r.cost_rate,
}


def daily_cost(resource: LaborResource) -> float:
    """Company cost of one day of the resource's time."""
    return _DAILY_COST[resource.kind](resource)


class ResourceRegistry:
    """Read-only mapping of (kind, id) → LaborResource."""

    def __init__(self, resources: Iterable[LaborResource] = ()):
        self._by_key: dict[tuple[ResourceKind, str], LaborResource] = {}
        self._missing: set[tuple[ResourceKind, str]] = set()
        for resource in resources:
            key = (resource.kind, resource.id)
            if key in self._by_key:
                logger.debug("Resource %s/%s redefined", resource.kind.value, resource.id)
            self._by_key[key] = resource

    def __iter__(self) -> Iterator[LaborResource]:
        return iter(self._by_key.values())

    def __len__(self) -> int:
        return len(self._by_key)

    def get(self, resource_id: str, kind: ResourceKind) -> Optional[LaborResource]:
        return self._by_key.get((kind, resource_id))

    def technicians(self) -> list[Technician]:
        return [r for r in self if r.kind is ResourceKind.TECHNICIAN]

    def subcontractors(self) -> list[Subcontractor]:
        return [r for r in self if r.kind is ResourceKind.SUBCONTRACTOR]

    def daily_cost(self, resource_id: str, kind: ResourceKind) -> float:
        """Daily cost of a resource, 0 when the id is not in the registry."""
        resource = self.get(resource_id, kind)
        if resource is None:
            # warn once per id
            if (kind, resource_id) not in self._missing:
                self._missing.add((kind, resource_id))
                logger.warning("Unknown %s %r, costed at $0", kind.value, resource_id)
            return 0.0
        return daily_cost(resource)

    def merged(self, resources: Iterable[LaborResource]) -> "ResourceRegistry":
        """New registry with ``resources`` added (later entries win)."""
        return ResourceRegistry([*self, *resources])

    def for_quote(self, quote: Quote) -> "ResourceRegistry":
        """Registry including the quote's own subcontractors."""
        if not quote.subcontractors:
            return self
        return self.merged(quote.subcontractors)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "ResourceRegistry":
        """Load a roster file of the form ``resources: [{id, name, kind, costRate, ...}]``."""
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ResourceRosterError(f"Cannot read resource roster {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ResourceRosterError(f"Malformed resource roster {path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("resources", []), list):
            raise ResourceRosterError(f"Resource roster {path} must hold a 'resources' list")

        entries = data.get("resources") or []
        for entry in entries:
            if not isinstance(entry, dict):
                raise ResourceRosterError(f"Roster entry in {path} must be a mapping, got {entry!r}")
        try:
            registry = cls(resource_from_dict(entry) for entry in entries)
        except KeyError as e:
            raise ResourceRosterError(f"Roster entry in {path} is missing {e}") from e
        except (InvalidNumberError, TypeError) as e:
            raise ResourceRosterError(f"Bad roster entry in {path}: {e}") from e
        logger.info(
            "Loaded resource roster %s: %d technicians, %d subcontractors",
            path.name, len(registry.technicians()), len(registry.subcontractors()),
        )
        return registry


def as_registry(resources: Union[ResourceRegistry, Iterable[LaborResource], None]) -> ResourceRegistry:
    """Accept a registry or a plain list of resources."""
    if isinstance(resources, ResourceRegistry):
        return resources
    return ResourceRegistry(resources or ())


def load_registry(path: Union[str, Path, None] = None) -> ResourceRegistry:
    """Load the configured roster (QUOTES_RESOURCES_FILE or the packaged default)."""
    return ResourceRegistry.from_yaml(path or config.RESOURCES_FILE)
