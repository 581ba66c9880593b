"""
Cost estimation orchestration.

Runs the external azure-cost-estimator once per IaC file, normalizes its
output and falls back to synthetic estimates when the tool gives no usable
answer.

Decision order for each file:
1. Tool missing or not startable, timed out, or non-zero exit - fall back
2. Empty stdout - fall back
3. Output that cannot be parsed - fall back
4. Parsed, but no non-zero cost - fall back
5. Parsed with at least one non-zero cost - use parsed records
"""

import logging
import subprocess
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterable, List, Optional

from az_costguard.config.loader import RunConfig
from .fallback import generate_fallback
from .parser import ParseError, USD_TO_EUR_RATE, parse_estimate
from .records import (
    EstimationOrigin,
    EstimationOutcome,
    EstimationReport,
    FallbackReason,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolResult:
    """Captured result of a single estimator invocation."""
    returncode: Optional[int]
    stdout: bytes = b""
    stderr: str = ""
    timed_out: bool = False
    not_found: bool = False
    launch_error: str = ""

    @property
    def succeeded(self) -> bool:
        return (
            not self.timed_out
            and not self.not_found
            and not self.launch_error
            and self.returncode == 0
        )


def build_estimator_args(path: str, config: RunConfig) -> List[str]:
    """Build the estimator command line for one template."""
    args = [
        config.estimator_executable,
        path,
        config.subscription_id,
        "--mode", "Subscription",
        "--location", config.location,
        "--stdout",
        "--disable-output-preview",
        "--output-format", "json",
    ]
    if not config.deep_scan:
        args.append("--disable-detailed-metrics")
    if config.terraform_executable:
        args.extend(["--terraform-executable", config.terraform_executable])
    return args


def run_estimator(path: str, config: RunConfig) -> ToolResult:
    """Invoke the estimator once, bounded by the configured timeout.

    Never raises for tool failures; they are reported on the ToolResult.
    """
    args = build_estimator_args(path, config)
    logger.debug("Running: %s", " ".join(args))
    try:
        completed = subprocess.run(
            args,
            capture_output=True,
            timeout=config.timeout_seconds,
        )
    except subprocess.TimeoutExpired:
        logger.warning(
            "Estimator timed out after %ss for %s", config.timeout_seconds, path
        )
        return ToolResult(returncode=None, timed_out=True)
    except FileNotFoundError:
        logger.warning("Estimator executable not found: %s", config.estimator_executable)
        return ToolResult(returncode=None, not_found=True)
    except OSError as e:
        logger.warning(
            "Could not start estimator %s: %s", config.estimator_executable, e
        )
        return ToolResult(returncode=None, launch_error=str(e) or type(e).__name__)

    return ToolResult(
        returncode=completed.returncode,
        stdout=completed.stdout or b"",
        stderr=(completed.stderr or b"").decode("utf-8", errors="replace"),
    )


def resolve_outcome(
    file: str,
    result: ToolResult,
    usd_to_eur: Decimal = USD_TO_EUR_RATE
) -> EstimationOutcome:
    """Turn one estimator result into an outcome.

    Pure apart from logging; this is the whole fallback decision table.
    """
    if result.not_found:
        return _fall_back(file, FallbackReason.TOOL_NOT_FOUND, "estimator not installed")
    if result.launch_error:
        return _fall_back(file, FallbackReason.TOOL_UNAVAILABLE, result.launch_error)
    if result.timed_out:
        return _fall_back(file, FallbackReason.TIMED_OUT, "estimator timed out")
    if result.returncode != 0:
        if result.stderr.strip():
            logger.warning("Estimator stderr for %s: %s", file, result.stderr.strip())
        return _fall_back(
            file, FallbackReason.TOOL_FAILED, f"exit code {result.returncode}"
        )

    if not result.stdout.strip():
        return _fall_back(file, FallbackReason.EMPTY_OUTPUT, "estimator printed nothing")

    try:
        parsed = parse_estimate(result.stdout, usd_to_eur=usd_to_eur)
    except ParseError as e:
        logger.warning("Could not parse estimator output for %s: %s", file, e)
        return _fall_back(file, e.reason, str(e))

    if not parsed.has_cost_signal:
        return _fall_back(
            file,
            FallbackReason.NO_COST_SIGNAL,
            f"{len(parsed.records)} resources, all zero cost",
        )

    logger.info(
        "Estimated %d resources for %s (%s schema)",
        len(parsed.records), file, parsed.schema.name,
    )
    return EstimationOutcome(
        file=file,
        origin=EstimationOrigin.PARSED,
        records=parsed.records,
        detail=f"{parsed.schema.name} schema",
    )


def _fall_back(file: str, reason: FallbackReason, detail: str) -> EstimationOutcome:
    records = generate_fallback(file)
    if records:
        logger.info(
            "Using %d fallback estimates for %s (%s)", len(records), file, reason.value
        )
    else:
        logger.warning("No estimate available for %s (%s)", file, reason.value)
    return EstimationOutcome(
        file=file,
        origin=EstimationOrigin.FALLBACK,
        records=records,
        reason=reason,
        detail=detail,
    )


class CostEstimator:
    """Estimates a list of IaC files sequentially.

    The runner is injectable so tests can replace the subprocess call.
    """

    def __init__(
        self,
        config: RunConfig,
        runner: Callable[[str, RunConfig], ToolResult] = run_estimator
    ):
        self.config = config
        self.runner = runner

    def estimate_file(self, path: str) -> EstimationOutcome:
        """Estimate one file. Never raises for estimator problems."""
        result = self.runner(path, self.config)
        return resolve_outcome(path, result, self.config.usd_to_eur_rate)

    def estimate(self, files: Iterable[str]) -> EstimationReport:
        """Estimate all files, keeping input order in the report."""
        report = EstimationReport()
        for path in files:
            report.outcomes.append(self.estimate_file(path))
        return report
