"""
Varnishkit Engine - Convergence.

Applies a resource graph in dependency order, then restarts the targets of
notify edges whose source changed.

Per-resource lifecycle:
    pending -> querying -> {unchanged, applying} -> {applied, failed}
    {unchanged, applied} -> restarting -> {applied, failed}

Each notified resource is restarted at most once per apply and restarts do
not notify further, so arbitrary notify graphs (cycles included) terminate.
"""

from __future__ import annotations

import time
from collections import deque

from loguru import logger

from varnishkit.core.exceptions import EngineBusyError, VarnishkitError
from varnishkit.core.types import STATUS_TRANSITIONS, Outcome, ResourceStatus
from varnishkit.engine.report import ApplyReport, ConvergenceResult
from varnishkit.graph.resource import ResourceRef
from varnishkit.graph.resource_graph import ResourceGraph
from varnishkit.providers.registry import ProviderRegistry
from varnishkit.utils.logger import log_prefix

# Failures inside a provider that abort the run instead of crashing it
APPLY_ERRORS = (VarnishkitError, OSError, ValueError, LookupError)


class ConvergenceEngine:
    """
    Converge the host to a ResourceGraph.

    One engine applies one graph at a time; apply() is not reentrant.
    """

    def __init__(self, registry: ProviderRegistry, noop: bool = False):
        self.registry = registry
        self.noop = noop
        self._running = False
        self._status: dict[ResourceRef, ResourceStatus] = {}

    def apply(self, graph: ResourceGraph, noop: bool | None = None) -> ApplyReport:
        """
        Apply every resource of ``graph``.

        Args:
            graph: Resources to converge.
            noop: Only query and report what would change (default: engine setting).

        Returns:
            ApplyReport with one result per resource; ``report.error`` is set
            when a provider failure aborted the run.

        Raises:
            GraphError: Graph is invalid; nothing was applied.
            EngineBusyError: Another apply is in progress.
        """
        if self._running:
            raise EngineBusyError()
        self._running = True
        try:
            return self._apply(graph, self.noop if noop is None else noop)
        finally:
            self._running = False

    def _apply(self, graph: ResourceGraph, noop: bool) -> ApplyReport:
        order = graph.topological_order()
        self._status = dict.fromkeys(order, ResourceStatus.PENDING)
        report = ApplyReport(noop=noop)

        mode = "noop run" if noop else "apply"
        logger.info(f"{log_prefix('🧭')} Starting {mode} of {len(order)} resources")

        for index, ref in enumerate(order):
            result = report.record(self._converge(graph, ref, noop))
            if result.failed:
                report.error = result.error
                report.failed_ref = ref
                self._abort_remaining(graph, order[index + 1:], ref, report)
                logger.error(f"{log_prefix('❌')} {ref} failed, aborting: {result.error}")
                return report

        self._notify_pass(graph, order, report, noop)

        if report.error is None:
            logger.info(f"{log_prefix('✅')} Finished {mode}: {report.summary()}")
        return report

    # Main pass

    def _converge(self, graph: ResourceGraph, ref: ResourceRef, noop: bool) -> ConvergenceResult:
        resource = graph.get(ref)
        log = logger.bind(resource=str(ref))
        start = time.perf_counter()

        def finish(result: ConvergenceResult) -> ConvergenceResult:
            result.duration_ms = (time.perf_counter() - start) * 1000
            return result

        try:
            provider = self.registry.for_resource(resource)
            self._transition(ref, ResourceStatus.QUERYING)
            observed = provider.query(resource)

            if provider.insync(resource, observed):
                self._transition(ref, ResourceStatus.UNCHANGED)
                log.debug(f"{ref} is in sync")
                return finish(ConvergenceResult(ref, Outcome.UNCHANGED, ResourceStatus.UNCHANGED))

            change = provider.describe_change(resource, observed)
            if noop:
                self._transition(ref, ResourceStatus.UNCHANGED)
                log.info(f"{ref} would change: {change}")
                return finish(ConvergenceResult(
                    ref, Outcome.CHANGED, ResourceStatus.UNCHANGED,
                    message=f"would change: {change}", noop=True,
                ))

            self._transition(ref, ResourceStatus.APPLYING)
            provider.apply(resource, observed)
            self._transition(ref, ResourceStatus.APPLIED)
            return finish(ConvergenceResult(ref, Outcome.CHANGED, ResourceStatus.APPLIED, message=change))

        except APPLY_ERRORS as e:
            self._transition(ref, ResourceStatus.FAILED)
            return finish(ConvergenceResult(
                ref, Outcome.FAILED, ResourceStatus.FAILED, message=str(e), error=e,
            ))

    def _abort_remaining(
        self,
        graph: ResourceGraph,
        remaining: list[ResourceRef],
        failed: ResourceRef,
        report: ApplyReport,
    ) -> None:
        """Mark unvisited resources failed, naming the failed dependency when there is one."""
        blocked = self._dependents_of(graph, failed)
        for ref in remaining:
            self._transition(ref, ResourceStatus.FAILED)
            if ref in blocked:
                message = f"dependency {failed} failed"
            else:
                message = f"not applied: run aborted after {failed} failed"
            report.record(ConvergenceResult(ref, Outcome.FAILED, ResourceStatus.FAILED, message=message))

    @staticmethod
    def _dependents_of(graph: ResourceGraph, ref: ResourceRef) -> set[ResourceRef]:
        seen: set[ResourceRef] = set()
        queue = deque([ref])
        while queue:
            for dependent in graph.dependents(queue.popleft()):
                if dependent not in seen:
                    seen.add(dependent)
                    queue.append(dependent)
        return seen

    # Notify pass

    def _notify_pass(
        self,
        graph: ResourceGraph,
        order: list[ResourceRef],
        report: ApplyReport,
        noop: bool,
    ) -> None:
        notified: dict[ResourceRef, list[ResourceRef]] = {}
        for ref in order:
            if report[ref].changed:
                for target in graph.notify_targets(ref):
                    notified.setdefault(target, []).append(ref)

        for target in order:
            if target not in notified:
                continue
            result = report[target]
            result.notified_by = notified[target]
            sources = ", ".join(str(src) for src in notified[target])

            if noop:
                result.message = "; ".join(filter(None, [result.message, f"would restart (notified by {sources})"]))
                continue

            resource = graph.get(target)
            provider = self.registry.for_resource(resource)
            logger.info(f"{log_prefix('🔁')} {target} notified by {sources}")
            try:
                self._transition(target, ResourceStatus.RESTARTING)
                result.restarted = provider.restart(resource)
                self._transition(target, ResourceStatus.APPLIED)
                result.status = ResourceStatus.APPLIED
            except APPLY_ERRORS as e:
                self._transition(target, ResourceStatus.FAILED)
                result.outcome = Outcome.FAILED
                result.status = ResourceStatus.FAILED
                result.message = f"restart failed: {e}"
                result.error = e
                report.error = e
                report.failed_ref = target
                logger.error(f"{log_prefix('❌')} {target} restart failed, aborting: {e}")
                return

    def _transition(self, ref: ResourceRef, new: ResourceStatus) -> None:
        current = self._status[ref]
        if new not in STATUS_TRANSITIONS[current]:
            raise RuntimeError(f"Invalid status transition for {ref}: {current} -> {new}")
        self._status[ref] = new
