"""
Package catalog - registry of known package definitions keyed by lowercase id.
"""

from kittynode.commands.errors import NotFoundError
from kittynode.commands.packages.base import PackageDefinition, PlanContext
from kittynode.commands.packages.ethereum import ETHEREUM_NAME, EthereumPackage

CATALOG: dict[str, PackageDefinition] = {
    ETHEREUM_NAME: EthereumPackage(),
}


def package_ids() -> list[str]:
    return list(CATALOG)


def get_definition(name: str) -> PackageDefinition:
    """Look up a definition by its canonical id (case-sensitive)."""
    try:
        return CATALOG[name]
    except KeyError:
        raise NotFoundError(f"Package '{name}' not found", resource=name) from None


__all__ = [
    "CATALOG",
    "PackageDefinition",
    "PlanContext",
    "get_definition",
    "package_ids",
]
