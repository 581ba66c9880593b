"""
Cost records and per-file estimation outcomes.

Defines the immutable data structures that flow from the estimator
to the cost report.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class CostRecord:
    """Immutable monthly cost line item for one cloud resource.

    Records are created fresh per run and never modified afterwards.
    Costs are always expressed in EUR and are never negative.
    """
    resource_id: str
    service: str
    sku: str
    monthly_cost: Decimal

    def __post_init__(self):
        """Validate the cost is non-negative."""
        if self.monthly_cost < 0:
            raise ValueError("monthly_cost must be >= 0")

    def to_dict(self) -> dict:
        """Wire representation used by the cost report."""
        return {
            "resourceId": self.resource_id,
            "service": self.service,
            "sku": self.sku,
            "monthlyCost": self.monthly_cost,
        }


class EstimationOrigin(Enum):
    """Where the records of an outcome came from."""
    PARSED = "parsed"
    FALLBACK = "fallback"


class FallbackReason(Enum):
    """Why an estimate fell back to synthetic records."""
    TOOL_FAILED = "tool_failed"
    TOOL_NOT_FOUND = "tool_not_found"
    TOOL_UNAVAILABLE = "tool_unavailable"
    TIMED_OUT = "timed_out"
    EMPTY_OUTPUT = "empty_output"
    NO_COST_SIGNAL = "no_cost_signal"
    MALFORMED_OUTPUT = "malformed_output"
    UNKNOWN_SCHEMA = "unknown_schema"
    INVALID_VALUE = "invalid_value"


@dataclass(frozen=True)
class EstimationOutcome:
    """Result of estimating a single IaC file.

    Parsed outcomes always carry at least one record. A fallback outcome
    may be empty when no canned bundle matches the file; an empty outcome
    is the explicit failure marker and `reason` says why.
    """
    file: str
    origin: EstimationOrigin
    records: Tuple[CostRecord, ...] = ()
    reason: Optional[FallbackReason] = None
    detail: str = ""

    @property
    def failed(self) -> bool:
        return not self.records

    @property
    def total_cost(self) -> Decimal:
        return sum((r.monthly_cost for r in self.records), Decimal("0"))


@dataclass
class EstimationReport:
    """Ordered outcomes of one estimation run."""
    outcomes: List[EstimationOutcome] = field(default_factory=list)

    @property
    def records(self) -> List[CostRecord]:
        """All records in input file order, duplicates across files kept."""
        return [record for outcome in self.outcomes for record in outcome.records]

    @property
    def total_cost(self) -> Decimal:
        return sum((o.total_cost for o in self.outcomes), Decimal("0"))

    @property
    def fallback_files(self) -> List[str]:
        return [o.file for o in self.outcomes if o.origin == EstimationOrigin.FALLBACK]

    @property
    def failed_files(self) -> List[str]:
        return [o.file for o in self.outcomes if o.failed]
