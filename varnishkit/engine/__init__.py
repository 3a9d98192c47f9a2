"""
Varnishkit Engine - Dependency-ordered, idempotent convergence.
"""

from varnishkit.engine.convergence import ConvergenceEngine
from varnishkit.engine.report import ApplyReport, ConvergenceResult

__all__ = ["ApplyReport", "ConvergenceEngine", "ConvergenceResult"]
