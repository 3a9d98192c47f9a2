"""
Varnishkit Engine - Apply results.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field

from varnishkit.core.types import Outcome, ResourceStatus
from varnishkit.graph.resource import ResourceRef


@dataclass
class ConvergenceResult:
    """Outcome of one resource in one apply."""

    ref: ResourceRef
    outcome: Outcome
    status: ResourceStatus
    message: str = ""
    error: Exception | None = None
    restarted: bool = False
    notified_by: list[ResourceRef] = field(default_factory=list)
    noop: bool = False
    duration_ms: float = 0.0

    @property
    def changed(self) -> bool:
        return self.outcome is Outcome.CHANGED

    @property
    def failed(self) -> bool:
        return self.outcome is Outcome.FAILED


class ApplyReport(Mapping[ResourceRef, ConvergenceResult]):
    """
    Results of one apply keyed by resource, in apply order.

    ``error`` holds the failure that aborted the run; results computed before
    the failure are kept.
    """

    def __init__(self, noop: bool = False) -> None:
        self._results: dict[ResourceRef, ConvergenceResult] = {}
        self.error: Exception | None = None
        self.failed_ref: ResourceRef | None = None
        self.noop = noop

    def record(self, result: ConvergenceResult) -> ConvergenceResult:
        self._results[result.ref] = result
        return result

    def __getitem__(self, ref: ResourceRef) -> ConvergenceResult:
        return self._results[ref]

    def __iter__(self) -> Iterator[ResourceRef]:
        return iter(self._results)

    def __len__(self) -> int:
        return len(self._results)

    @property
    def success(self) -> bool:
        return self.error is None and not any(r.failed for r in self._results.values())

    @property
    def changed(self) -> list[ResourceRef]:
        return [ref for ref, r in self._results.items() if r.changed]

    @property
    def restarted(self) -> list[ResourceRef]:
        return [ref for ref, r in self._results.items() if r.restarted]

    @property
    def failed(self) -> list[ResourceRef]:
        return [ref for ref, r in self._results.items() if r.failed]

    def counts(self) -> dict[Outcome, int]:
        counts = dict.fromkeys(Outcome, 0)
        for result in self._results.values():
            counts[result.outcome] += 1
        return counts

    def raise_on_failure(self) -> None:
        """Re-raise the error that aborted the run, if any."""
        if self.error is not None:
            raise self.error

    def summary(self) -> str:
        counts = self.counts()
        restarts = len(self.restarted)
        prefix = "noop: " if self.noop else ""
        return (
            f"{prefix}{counts[Outcome.CHANGED]} changed, {counts[Outcome.UNCHANGED]} unchanged, "
            f"{counts[Outcome.FAILED]} failed, {restarts} restarted"
        )
