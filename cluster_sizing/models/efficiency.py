import logging
from typing import Optional

from cluster_sizing.interface import CapacityResult
from cluster_sizing.interface import EffectiveDemand
from cluster_sizing.interface import EfficiencySnapshot
from cluster_sizing.interface import NodeRequirement
from cluster_sizing.interface import RedundancyValidation
from cluster_sizing.interface import SizingPolicy
from cluster_sizing.interface import UtilizationStatus
from cluster_sizing.models.utils import nodes_needed
from cluster_sizing.models.utils import percent_of

logger = logging.getLogger(__name__)

WARNING_UTILIZATION_PERCENT = 75.0
CRITICAL_UTILIZATION_PERCENT = 85.0


def classify_utilization(percent: float) -> UtilizationStatus:
    """good below 75%, warning from 75% up to 85%, critical from 85%"""
    if percent >= CRITICAL_UTILIZATION_PERCENT:
        return UtilizationStatus.critical
    if percent >= WARNING_UTILIZATION_PERCENT:
        return UtilizationStatus.warning
    return UtilizationStatus.good


def _per_node(total: float, nodes: int) -> int:
    # Allocations are whole units, a node holds 10 VMs not 9.26
    return nodes_needed(total, nodes)


def analyze_efficiency(
    total_nodes: int,
    demand: EffectiveDemand,
    capacity: CapacityResult,
    failed_nodes: int = 0,
    quorum_floor: int = 3,
) -> EfficiencySnapshot:
    """Per node allocation and utilization with failed_nodes nodes lost

    The workload is spread over max(quorum_floor, total - failed) nodes so
    the figures stay finite, but that clamp hides a cluster that has dropped
    below quorum. storage_quorum_healthy (and data_at_risk) is computed from
    the nodes actually left and is what callers must check.
    """
    for name, value in (
        ("total_nodes", total_nodes),
        ("failed_nodes", failed_nodes),
        ("quorum_floor", quorum_floor),
    ):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
    if quorum_floor < 1:
        raise ValueError(f"quorum_floor must be >= 1, got {quorum_floor}")

    remaining = max(0, total_nodes - failed_nodes)
    surviving = max(quorum_floor, remaining)
    quorum_healthy = remaining >= quorum_floor

    vcpus_per_node = _per_node(demand.total_vcpus, surviving)
    memory_per_node = _per_node(demand.total_memory_gib, surviving)
    cpu_percent = percent_of(vcpus_per_node, capacity.vcpu_capacity)
    memory_percent = percent_of(memory_per_node, capacity.memory_capacity_gib)

    if not quorum_healthy:
        logger.warning(
            "Only %d of %d nodes left after %d failures, below quorum of %d",
            remaining,
            total_nodes,
            failed_nodes,
            quorum_floor,
        )

    return EfficiencySnapshot(
        total_nodes=total_nodes,
        failed_nodes=failed_nodes,
        surviving_nodes=surviving,
        remaining_nodes=remaining,
        quorum_floor=quorum_floor,
        vms_per_node=_per_node(demand.vm_count, surviving),
        vcpus_per_node=vcpus_per_node,
        memory_gib_per_node=memory_per_node,
        cpu_utilization_percent=cpu_percent,
        memory_utilization_percent=memory_percent,
        cpu_status=classify_utilization(cpu_percent),
        memory_status=classify_utilization(memory_percent),
        storage_quorum_healthy=quorum_healthy,
    )


def validate_redundancy(
    requirement: NodeRequirement,
    capacity: CapacityResult,
    policy: SizingPolicy,
    failed_nodes: Optional[int] = None,
) -> RedundancyValidation:
    """Checks the resolved plan still holds after losing failed_nodes nodes

    Unlike analyze_efficiency this uses the exact (unrounded) per node load.
    CPU and memory must stay under the eviction ceiling, storage must stay
    within the operational share of the un-reserved usable storage, and the
    nodes left must still form a quorum.
    """
    if not requirement.resolved or requirement.total_nodes is None:
        raise ValueError(
            "Requirement has no final node count, resolve it before validating"
        )
    if failed_nodes is None:
        failed_nodes = policy.node_redundancy
    if isinstance(failed_nodes, bool) or failed_nodes < 0:
        raise ValueError(f"failed_nodes must be >= 0, got {failed_nodes!r}")

    demand = requirement.demand
    total = requirement.total_nodes
    remaining = max(0, total - failed_nodes)
    ceiling = policy.eviction_utilization_ceiling_percent
    operational = policy.operational_capacity_percent

    def utilization(load: float, nodes: int, per_node: float) -> float:
        if nodes == 0:
            return 0.0 if load <= 0 else float("inf")
        return percent_of(load / nodes, per_node)

    cpu_healthy = utilization(demand.total_vcpus, total, capacity.vcpu_capacity)
    cpu_failed = utilization(demand.total_vcpus, remaining, capacity.vcpu_capacity)
    memory_healthy = utilization(
        demand.total_memory_gib, total, capacity.memory_capacity_gib
    )
    memory_failed = utilization(
        demand.total_memory_gib, remaining, capacity.memory_capacity_gib
    )

    if capacity.max_usable_storage_gib > 0:
        storage_healthy = utilization(
            demand.total_storage_gib, total, capacity.max_usable_storage_gib
        )
        storage_failed = utilization(
            demand.total_storage_gib, remaining, capacity.max_usable_storage_gib
        )
        storage_passes = storage_failed <= operational
    else:
        # No local flash, nothing to fill
        storage_healthy = storage_failed = 0.0
        storage_passes = True

    result = RedundancyValidation(
        total_nodes=total,
        failed_nodes=failed_nodes,
        remaining_nodes=remaining,
        eviction_ceiling_percent=ceiling,
        storage_operational_percent=operational,
        cpu_utilization_healthy=cpu_healthy,
        memory_utilization_healthy=memory_healthy,
        storage_utilization_healthy=storage_healthy,
        cpu_utilization_after_failure=cpu_failed,
        memory_utilization_after_failure=memory_failed,
        storage_utilization_after_failure=storage_failed,
        cpu_passes=cpu_failed <= ceiling,
        memory_passes=memory_failed <= ceiling,
        storage_passes=storage_passes,
        quorum_passes=remaining >= requirement.quorum_floor,
    )
    if not result.all_pass:
        logger.warning(
            "%s nodes of %s fail redundancy after %d failures: "
            "cpu=%.1f%% memory=%.1f%% storage=%.1f%% remaining=%d",
            total,
            capacity.profile_name,
            failed_nodes,
            cpu_failed,
            memory_failed,
            storage_failed,
            remaining,
        )
    return result
