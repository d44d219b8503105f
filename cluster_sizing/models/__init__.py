from cluster_sizing.models.breakdown import allocate_breakdown
from cluster_sizing.models.capacity import compute_capacity
from cluster_sizing.models.capacity import compute_reservations
from cluster_sizing.models.efficiency import analyze_efficiency
from cluster_sizing.models.efficiency import classify_utilization
from cluster_sizing.models.efficiency import validate_redundancy
from cluster_sizing.models.redundancy import eviction_safety_floor
from cluster_sizing.models.redundancy import resolve_final_node_count
from cluster_sizing.models.redundancy import resolve_node_count
from cluster_sizing.models.redundancy import round_to_fault_domain
from cluster_sizing.models.requirements import compute_requirements
from cluster_sizing.models.requirements import effective_demand

__all__ = [
    "allocate_breakdown",
    "analyze_efficiency",
    "classify_utilization",
    "compute_capacity",
    "compute_requirements",
    "compute_reservations",
    "effective_demand",
    "eviction_safety_floor",
    "resolve_final_node_count",
    "resolve_node_count",
    "round_to_fault_domain",
    "validate_redundancy",
]
