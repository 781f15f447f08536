"""
PackageDefinition - the capability every catalog entry provides.
"""

from dataclasses import dataclass
from typing import Optional, Protocol

from kittynode.commands.ephemery import EphemeryConfig
from kittynode.commands.home import Home
from kittynode.commands.models import Package, PackageConfig


@dataclass(frozen=True)
class PlanContext:
    """Host-side inputs a plan depends on besides the package config."""

    home: Home
    ephemery: Optional[EphemeryConfig] = None


class PackageDefinition(Protocol):
    """A package the catalog knows how to plan."""

    id: str

    def build_package(self, config: PackageConfig, context: PlanContext) -> Package:
        """Pure: the same config and context always yield the same Package."""
        ...

    def plan_context(
        self, config: PackageConfig, home: Home, refresh: bool = False
    ) -> PlanContext:
        """Gather host-side inputs, fetching fresh network metadata when ``refresh``."""
        ...

    def supports_network_selection(self) -> bool: ...

    def unconfigured_message(self, config: PackageConfig) -> str:
        """Actionable error text for an install attempted with an empty plan."""
        ...

    def validate_network(self, network: str) -> None: ...
