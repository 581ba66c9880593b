"""
Cost report persistence.

Writes the `cost.json` artifact consumed by the pull request comment step,
and reads it back.
"""

import json
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Iterable, List

from az_costguard.core.records import CostRecord


@dataclass(frozen=True)
class ReportSummary:
    """Headline numbers of a cost report."""
    resource_count: int
    total_monthly_cost: Decimal
    most_expensive: List[CostRecord]


def _json_token(value: Any) -> str:
    """Render one JSON value, writing Decimals as exact number text."""
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return str(int(value))
        return format(value, "f")
    return json.dumps(value)


def _render_record(record: CostRecord) -> str:
    fields = [
        f"    {json.dumps(key)}: {_json_token(value)}"
        for key, value in record.to_dict().items()
    ]
    return "  {\n" + ",\n".join(fields) + "\n  }"


def write_report(records: Iterable[CostRecord], path: str) -> Path:
    """Write records as a JSON array, replacing any previous report.

    Returns:
        Path of the written report
    """
    report_path = Path(path)
    rendered = [_render_record(record) for record in records]
    with open(report_path, "w", encoding="utf-8") as f:
        if rendered:
            f.write("[\n" + ",\n".join(rendered) + "\n]\n")
        else:
            f.write("[]\n")
    return report_path


def read_report(path: str) -> List[CostRecord]:
    """Read a report written by write_report.

    Raises:
        FileNotFoundError: If the report doesn't exist
        ValueError: If the report is not a valid array of cost records
    """
    with open(path, "r", encoding="utf-8") as f:
        payload = json.load(f, parse_float=Decimal)

    if not isinstance(payload, list):
        raise ValueError(f"Cost report {path} must contain a JSON array")

    records = []
    for item in payload:
        try:
            records.append(CostRecord(
                resource_id=item["resourceId"],
                service=item["service"],
                sku=item["sku"],
                monthly_cost=Decimal(item["monthlyCost"]),
            ))
        except (KeyError, TypeError, InvalidOperation) as e:
            raise ValueError(f"Invalid cost record in {path}: {e}")
    return records


def summarize(records: Iterable[CostRecord], top: int = 5) -> ReportSummary:
    """Total cost and the `top` most expensive records."""
    records = list(records)
    ranked = sorted(records, key=lambda r: r.monthly_cost, reverse=True)
    return ReportSummary(
        resource_count=len(records),
        total_monthly_cost=sum((r.monthly_cost for r in records), Decimal("0")),
        most_expensive=ranked[:top],
    )
