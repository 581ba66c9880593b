"""
Estimator output parsing.

Decodes the JSON emitted by the different azure-cost-estimator versions
into normalized cost records.

Recognition order:
1. `resources` - lower camel case schema, costs already in EUR
2. `Resources` - estimator report schema, costs in USD
"""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Union

from .records import CostRecord, FallbackReason

logger = logging.getLogger(__name__)

# Fixed rate, not a live quote. Override through RunConfig.usd_to_eur_rate.
USD_TO_EUR_RATE = Decimal("0.85")

DEFAULT_SKU = "Standard"
UNKNOWN_SERVICE = "Unknown"

_PROVIDERS_SEGMENT = "providers"
_PROVIDER_PREFIX = "Microsoft."


class ParseError(ValueError):
    """Base class for estimator output that cannot be turned into records."""
    reason = FallbackReason.MALFORMED_OUTPUT


class MalformedOutputError(ParseError):
    """Output is not valid JSON."""
    reason = FallbackReason.MALFORMED_OUTPUT


class UnknownSchemaError(ParseError):
    """Valid JSON with no recognized top-level shape."""
    reason = FallbackReason.UNKNOWN_SCHEMA


class InvalidValueError(ParseError):
    """A recognized entry is missing a field or carries a bad cost."""
    reason = FallbackReason.INVALID_VALUE


class SchemaVariant(str, Enum):
    """Known JSON shapes, keyed by their top-level array key."""
    RESOURCES = "resources"
    ACE_REPORT = "Resources"


@dataclass(frozen=True)
class ParsedEstimate:
    """Records decoded from one estimator run and the schema that matched."""
    schema: SchemaVariant
    records: Tuple[CostRecord, ...]

    @property
    def has_cost_signal(self) -> bool:
        """True when at least one record carries a non-zero cost."""
        return any(r.monthly_cost > 0 for r in self.records)


def derive_service(resource_id: str) -> str:
    """Extract the service name from an ARM resource path.

    `/subscriptions/x/resourceGroups/y/providers/Microsoft.Web/sites/z`
    yields `Web`. Paths without a provider segment yield `Unknown`.
    """
    segments = resource_id.split("/")
    try:
        index = segments.index(_PROVIDERS_SEGMENT)
    except ValueError:
        return UNKNOWN_SERVICE

    if index + 1 >= len(segments):
        return UNKNOWN_SERVICE

    provider = segments[index + 1]
    if provider.startswith(_PROVIDER_PREFIX):
        provider = provider[len(_PROVIDER_PREFIX):]
    return provider or UNKNOWN_SERVICE


def recognize_schema(document: Any) -> SchemaVariant:
    """Return the first known schema variant present in a decoded document.

    Raises:
        UnknownSchemaError: If the document matches no variant
    """
    if isinstance(document, dict):
        for variant in SchemaVariant:
            if variant.value in document:
                return variant
        raise UnknownSchemaError(
            f"Unrecognized estimator output keys: {sorted(document.keys())}"
        )
    raise UnknownSchemaError(
        f"Estimator output must be a JSON object, got {type(document).__name__}"
    )


def parse_estimate(
    raw_output: Union[bytes, str],
    schema_hint: Optional[SchemaVariant] = None,
    usd_to_eur: Decimal = USD_TO_EUR_RATE
) -> ParsedEstimate:
    """Parse raw estimator output into cost records.

    Args:
        raw_output: stdout of the estimator
        schema_hint: Only accept this schema variant when given
        usd_to_eur: Conversion rate applied to USD denominated schemas

    Returns:
        ParsedEstimate with the matched schema and its records

    Raises:
        MalformedOutputError: If the output is not valid JSON
        UnknownSchemaError: If no known (or hinted) schema matches
        InvalidValueError: If an entry is incomplete or has a bad cost
    """
    document = _decode(raw_output)

    if schema_hint is not None:
        if not isinstance(document, dict) or schema_hint.value not in document:
            raise UnknownSchemaError(f"Expected '{schema_hint.value}' schema")
        schema = schema_hint
    else:
        schema = recognize_schema(document)

    entries = document[schema.value]
    if not isinstance(entries, list):
        raise UnknownSchemaError(f"'{schema.value}' must be an array")

    normalize = _NORMALIZERS[schema]
    records = tuple(
        normalize(_require_object(entry, i), usd_to_eur)
        for i, entry in enumerate(entries)
    )
    logger.debug("Parsed %d records using %s schema", len(records), schema.name)
    return ParsedEstimate(schema=schema, records=records)


def _decode(raw_output: Union[bytes, str]) -> Any:
    if isinstance(raw_output, bytes):
        try:
            raw_output = raw_output.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedOutputError(f"Estimator output is not UTF-8: {e}")
    try:
        return json.loads(raw_output, parse_float=Decimal)
    except json.JSONDecodeError as e:
        raise MalformedOutputError(f"Estimator output is not valid JSON: {e}")


def _require_object(entry: Any, index: int) -> Dict[str, Any]:
    if not isinstance(entry, dict):
        raise InvalidValueError(f"Entry {index} must be an object")
    return entry


def _require_string(entry: Dict[str, Any], key: str) -> str:
    value = entry.get(key)
    if not isinstance(value, str) or not value:
        raise InvalidValueError(f"Missing required string field '{key}'")
    return value


def _optional_string(entry: Dict[str, Any], key: str) -> Optional[str]:
    value = entry.get(key)
    if isinstance(value, str) and value:
        return value
    return None


def _to_cost(value: Any, field_name: str) -> Decimal:
    """Validate a decoded JSON number as a non-negative finite cost."""
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise InvalidValueError(f"'{field_name}' must be a number, got {value!r}")

    cost = Decimal(value) if not isinstance(value, Decimal) else value
    if not cost.is_finite():
        raise InvalidValueError(f"'{field_name}' must be finite")
    if cost < 0:
        raise InvalidValueError(f"'{field_name}' must be >= 0, got {cost}")
    return cost


def _normalize_resources_entry(entry: Dict[str, Any], usd_to_eur: Decimal) -> CostRecord:
    resource_id = _require_string(entry, "id")
    if "monthlyCostEUR" not in entry:
        raise InvalidValueError(f"Missing 'monthlyCostEUR' for {resource_id}")

    return CostRecord(
        resource_id=resource_id,
        service=_optional_string(entry, "serviceName") or derive_service(resource_id),
        sku=_optional_string(entry, "skuName") or DEFAULT_SKU,
        monthly_cost=_to_cost(entry["monthlyCostEUR"], "monthlyCostEUR"),
    )


def _normalize_ace_entry(entry: Dict[str, Any], usd_to_eur: Decimal) -> CostRecord:
    resource_id = _require_string(entry, "Id")
    total_cost = entry.get("TotalCost")
    if not isinstance(total_cost, dict) or "OriginalValue" not in total_cost:
        raise InvalidValueError(f"Missing 'TotalCost.OriginalValue' for {resource_id}")

    usd = _to_cost(total_cost["OriginalValue"], "TotalCost.OriginalValue")
    return CostRecord(
        resource_id=resource_id,
        service=derive_service(resource_id),
        sku=DEFAULT_SKU,
        monthly_cost=usd * usd_to_eur,
    )


_NORMALIZERS: Dict[SchemaVariant, Callable[[Dict[str, Any], Decimal], CostRecord]] = {
    SchemaVariant.RESOURCES: _normalize_resources_entry,
    SchemaVariant.ACE_REPORT: _normalize_ace_entry,
}