"""Splits the raw capacity of a sized cluster into named segments

Segments are filled in order and each one is clamped to what is left of the
raw total, so they can never add up to more than the hardware offers. What
does not fit is reported as overflow and "free" is the remainder.
"""

import logging
from typing import List
from typing import Sequence
from typing import Tuple

from cluster_sizing.interface import BreakdownSegment
from cluster_sizing.interface import CapacityResult
from cluster_sizing.interface import ClusterBreakdown
from cluster_sizing.interface import Dimension
from cluster_sizing.interface import HardwareProfile
from cluster_sizing.interface import NodeRequirement
from cluster_sizing.interface import ResourceBreakdown
from cluster_sizing.interface import SizingPolicy

logger = logging.getLogger(__name__)

# (name, value, description)
_Demand = Tuple[str, float, str]


def _fill(
    dimension: Dimension, unit: str, raw_total: float, demands: Sequence[_Demand]
) -> ResourceBreakdown:
    remaining = max(0.0, raw_total)
    overflow = 0.0
    segments: List[BreakdownSegment] = []
    for name, value, description in demands:
        value = max(0.0, value)
        placed = min(value, remaining)
        overflow += value - placed
        remaining -= placed
        segments.append(
            BreakdownSegment(name=name, value=placed, description=description)
        )
    segments.append(
        BreakdownSegment(name="free", value=remaining, description="Unallocated")
    )
    if overflow > 0:
        logger.debug(
            "%s breakdown overflows raw total by %s %s", dimension, overflow, unit
        )
    return ResourceBreakdown(
        dimension=dimension,
        unit=unit,
        raw_total=raw_total,
        segments=segments,
        overflow=overflow,
    )


def _cpu(
    profile: HardwareProfile,
    policy: SizingPolicy,
    capacity: CapacityResult,
    requirement: NodeRequirement,
    nodes: int,
) -> ResourceBreakdown:
    # Everything is expressed in schedulable vCPUs, cores * ht * overcommit
    vcpus_per_core = policy.effective_hyperthreading_multiplier * policy.cpu_overcommit
    demand = requirement.demand
    reservations = capacity.reservations
    return _fill(
        Dimension.cpu,
        "vCPU",
        profile.physical_cores * vcpus_per_core * nodes,
        [
            ("workload", demand.base_vcpus, "vCPUs requested by the VMs"),
            (
                "vm-overhead-fixed",
                demand.cpu_overhead_fixed,
                "Per VM hypervisor processes",
            ),
            (
                "vm-overhead-proportional",
                demand.cpu_overhead_proportional,
                "Emulation overhead proportional to guest vCPUs",
            ),
            (
                "storage-service-reserved",
                reservations.storage_service_cpu * vcpus_per_core * nodes,
                "Cores held for the storage daemons",
            ),
            (
                "system-reserved",
                reservations.system_cpu * vcpus_per_core * nodes,
                "Cores held for the host OS and platform agents",
            ),
        ],
    )


def _memory(
    profile: HardwareProfile,
    policy: SizingPolicy,
    capacity: CapacityResult,
    requirement: NodeRequirement,
    nodes: int,
) -> ResourceBreakdown:
    overcommit = policy.memory_overcommit
    demand = requirement.demand
    reservations = capacity.reservations
    return _fill(
        Dimension.memory,
        "GiB",
        profile.memory_gib * overcommit * nodes,
        [
            ("workload", demand.base_memory_gib, "Memory requested by the VMs"),
            (
                "vm-overhead-fixed",
                demand.memory_overhead_fixed_gib,
                "Per VM hypervisor processes",
            ),
            (
                "vm-overhead-proportional",
                demand.memory_overhead_proportional_gib,
                "Page tables and device emulation",
            ),
            (
                "storage-service-reserved",
                reservations.storage_service_memory_gib * overcommit * nodes,
                "Memory held for the storage daemons",
            ),
            (
                "system-reserved",
                reservations.system_memory_gib * overcommit * nodes,
                "Memory held for the host OS and platform agents",
            ),
        ],
    )


def _storage(
    profile: HardwareProfile,
    policy: SizingPolicy,
    requirement: NodeRequirement,
    nodes: int,
) -> ResourceBreakdown:
    demand = requirement.demand
    base = demand.base_storage_gib
    grown = base * demand.growth_multiplier
    used = demand.total_storage_gib

    replicated = used * policy.replication_factor
    # Raw space that must exist so replicated data sits at the operational level
    provisioned = replicated * 100 / policy.operational_capacity_percent
    metadata = (
        provisioned
        * policy.metadata_overhead_percent
        / (100 - policy.metadata_overhead_percent)
    )

    return _fill(
        Dimension.storage,
        "GiB",
        profile.raw_storage_gib * nodes,
        [
            ("workload", base, f"Current {demand.storage_basis} storage"),
            ("growth", grown - base, "Planned growth over the horizon"),
            (
                "virtualization-overhead",
                used - grown,
                "Snapshots, clones and migration scratch",
            ),
            ("replication", replicated - used, "Additional replicas"),
            (
                "operational-headroom",
                provisioned - replicated,
                "Headroom kept free for rebalancing",
            ),
            ("metadata-overhead", metadata, "Storage layer metadata"),
        ],
    )


def allocate_breakdown(
    profile: HardwareProfile,
    policy: SizingPolicy,
    capacity: CapacityResult,
    requirement: NodeRequirement,
) -> ClusterBreakdown:
    """Raw capacity of the final cluster split into workload, overhead,
    reservation and free segments for every dimension
    """
    if not requirement.feasible:
        raise ValueError(
            f"Profile {capacity.profile_name} cannot host the workload, "
            "there is no cluster to break down"
        )
    if requirement.total_nodes is None:
        raise ValueError("Requirement has no final node count, resolve it first")

    nodes = requirement.total_nodes
    return ClusterBreakdown(
        cpu=_cpu(profile, policy, capacity, requirement, nodes),
        memory=_memory(profile, policy, capacity, requirement, nodes),
        storage=_storage(profile, policy, requirement, nodes),
    )
