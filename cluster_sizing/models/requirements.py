import logging
import math
from typing import List

from cluster_sizing.interface import CapacityResult
from cluster_sizing.interface import Dimension
from cluster_sizing.interface import EffectiveDemand
from cluster_sizing.interface import MIB_IN_GIB
from cluster_sizing.interface import NodeRequirement
from cluster_sizing.interface import SizingPolicy
from cluster_sizing.interface import WorkloadDemand
from cluster_sizing.models.utils import nodes_needed

logger = logging.getLogger(__name__)


def growth_multiplier(annual_growth_percent: float, years: int) -> float:
    # Growth compounds annually, 20% over 2 years is 1.44x not 1.4x
    return (1 + annual_growth_percent / 100) ** years


def effective_demand(policy: SizingPolicy, demand: WorkloadDemand) -> EffectiveDemand:
    """Adds hypervisor overhead and planned growth to the raw VM demand

    CPU and memory get a fixed charge per VM plus a share proportional to the
    guest size. Storage is grown for the planning horizon and then inflated by
    the virtualization overhead (snapshots, clones, migration scratch).
    """
    overhead = policy.overhead

    cpu_fixed = demand.vm_count * overhead.cpu_fixed_per_vm
    cpu_proportional = demand.vcpus * overhead.cpu_proportional_percent / 100
    total_vcpus = int(math.ceil(demand.vcpus + cpu_fixed + cpu_proportional))

    memory_fixed_gib = demand.vm_count * overhead.memory_fixed_per_vm_mib / MIB_IN_GIB
    memory_proportional_gib = (
        demand.memory_gib * overhead.memory_proportional_percent / 100
    )
    total_memory_gib = demand.memory_gib + memory_fixed_gib + memory_proportional_gib

    growth = growth_multiplier(
        policy.annual_growth_percent, policy.planning_horizon_years
    )
    virt_multiplier = 1 + policy.virtualization_storage_overhead_percent / 100
    base_storage_gib = demand.storage_gib

    return EffectiveDemand(
        vm_count=demand.vm_count,
        base_vcpus=demand.vcpus,
        cpu_overhead_fixed=cpu_fixed,
        cpu_overhead_proportional=cpu_proportional,
        total_vcpus=total_vcpus,
        base_memory_gib=demand.memory_gib,
        memory_overhead_fixed_gib=memory_fixed_gib,
        memory_overhead_proportional_gib=memory_proportional_gib,
        total_memory_gib=total_memory_gib,
        storage_basis=demand.storage_basis,
        base_storage_gib=base_storage_gib,
        growth_multiplier=growth,
        virtualization_overhead_multiplier=virt_multiplier,
        total_storage_gib=base_storage_gib * growth * virt_multiplier,
    )


def limiting_dimension(
    nodes_for_cpu: int, nodes_for_memory: int, nodes_for_storage: int
) -> Dimension:
    """The dimension needing the most nodes, ties go cpu > memory > storage"""
    counts = {
        Dimension.cpu: nodes_for_cpu,
        Dimension.memory: nodes_for_memory,
        Dimension.storage: nodes_for_storage,
    }
    # max() keeps the first of equal keys and the dict follows declaration order
    return max(counts, key=lambda d: counts[d])


def compute_requirements(
    capacity: CapacityResult, policy: SizingPolicy, demand: WorkloadDemand
) -> NodeRequirement:
    """Per dimension node counts and the quorum adjusted baseline

    If any dimension has demand but the profile offers zero capacity for it
    the result is marked infeasible instead of raising, so callers can say
    "this profile cannot host this workload". The returned requirement is not
    yet resolved, see redundancy.resolve_final_node_count.
    """
    effective = effective_demand(policy, demand)

    counts = {}
    infeasible: List[Dimension] = []
    for dimension in Dimension:
        total = effective.total_for(dimension)
        per_node = capacity.capacity_for(dimension)
        if total > 0 and per_node <= 0:
            infeasible.append(dimension)
            counts[dimension] = 0
        else:
            counts[dimension] = nodes_needed(total, per_node)

    if infeasible:
        logger.warning(
            "Profile %s cannot host the workload, no %s capacity per node",
            capacity.profile_name,
            ", ".join(str(d) for d in infeasible),
        )
        limiting = infeasible[0]
    else:
        limiting = limiting_dimension(
            counts[Dimension.cpu], counts[Dimension.memory], counts[Dimension.storage]
        )

    baseline_minimum = max(policy.quorum_floor, *counts.values())
    logger.debug(
        "profile=%s nodes cpu=%d memory=%d storage=%d baseline=%d limiting=%s",
        capacity.profile_name,
        counts[Dimension.cpu],
        counts[Dimension.memory],
        counts[Dimension.storage],
        baseline_minimum,
        limiting,
    )

    return NodeRequirement(
        demand=effective,
        nodes_for_cpu=counts[Dimension.cpu],
        nodes_for_memory=counts[Dimension.memory],
        nodes_for_storage=counts[Dimension.storage],
        limiting_dimension=limiting,
        quorum_floor=policy.quorum_floor,
        baseline_minimum=baseline_minimum,
        feasible=not infeasible,
        infeasible_dimensions=tuple(infeasible),
    )
