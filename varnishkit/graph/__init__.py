"""
Varnishkit Graph - Resources and their dependency graph.
"""

from varnishkit.graph.resource import DependencyEdge, Resource, ResourceRef
from varnishkit.graph.resource_graph import ResourceGraph

__all__ = ["DependencyEdge", "Resource", "ResourceGraph", "ResourceRef"]
