"""
Final node count for a cluster: quorum, eviction safety, spares, fault domains.

PIPELINE
--------
The node requirement solver hands over a baseline, the larger of the quorum
floor and the per dimension node counts. Three steps follow, each feeding the
next exactly once:

    1. eviction safety   n >= baseline, floor(n * (1 - t/100)) >= baseline
    2. N+X spares        n + node_redundancy
    3. fault domains     round up to a multiple of fault_domain_size

Every step is non-decreasing so the final count is never below the baseline
and never below the quorum floor.

EVICTION SAFETY
---------------
The eviction threshold t is the share of every node held back before the
scheduler starts evicting VMs (t=4 means nodes evict at 96% utilization). A
cluster of n nodes only offers n * (1 - t/100) nodes worth of schedulable
capacity, so n is raised until that covers the baseline:

    baseline=23, t=4:  n=23 -> floor(22.08)=22 < 23
                       n=24 -> floor(23.04)=23 ok

FAULT DOMAINS
-------------
The storage layer replicates across fault domains of equal size. With
alignment on, a 26 node cluster becomes 27 with domains of 3. Rounding is
the last step and is applied once, an already aligned count is unchanged.
"""

import logging
import math
from typing import Tuple

from cluster_sizing.interface import NodeRequirement
from cluster_sizing.interface import SizingPolicy
from cluster_sizing.models.utils import next_n

logger = logging.getLogger(__name__)

__all__ = [
    "eviction_safety_floor",
    "round_to_fault_domain",
    "resolve_node_count",
    "resolve_final_node_count",
]


def _check_count(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer node count, got {value!r}")
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")


# =============================================================================
# Individual steps
# =============================================================================


def _schedulable(node_count: int, threshold_percent: float) -> int:
    return int(math.floor(node_count * (100 - threshold_percent) / 100))


def eviction_safety_floor(baseline_minimum: int, threshold_percent: float) -> int:
    """Smallest n >= baseline_minimum whose schedulable share covers the baseline"""
    _check_count("baseline_minimum", baseline_minimum)
    if not 0 <= threshold_percent < 100:
        raise ValueError(
            f"threshold_percent must be in [0, 100), got {threshold_percent}"
        )

    # Closed form estimate, then walk off any floating point error
    n = max(
        baseline_minimum,
        int(math.ceil(baseline_minimum * 100 / (100 - threshold_percent))),
    )
    while _schedulable(n, threshold_percent) < baseline_minimum:
        n += 1
    while (
        n > baseline_minimum
        and _schedulable(n - 1, threshold_percent) >= baseline_minimum
    ):
        n -= 1
    return n


def round_to_fault_domain(node_count: int, fault_domain_size: int) -> int:
    """Rounds up to the next multiple of fault_domain_size, 0 stays 0"""
    _check_count("node_count", node_count)
    if fault_domain_size < 1:
        raise ValueError(f"fault_domain_size must be >= 1, got {fault_domain_size}")
    if node_count == 0:
        return 0
    return next_n(node_count, fault_domain_size)


# =============================================================================
# Pipeline
# =============================================================================


def resolve_node_count(
    baseline_minimum: int, policy: SizingPolicy
) -> Tuple[int, int, int]:
    """Runs eviction safety, spares and fault domain rounding on a baseline

    Returns (eviction_safe_minimum, pre_rounding_total, total_nodes).
    """
    _check_count("baseline_minimum", baseline_minimum)

    eviction_safe = eviction_safety_floor(
        baseline_minimum, policy.eviction_threshold_percent
    )
    pre_rounding = eviction_safe + policy.node_redundancy
    if policy.fault_domain_alignment:
        total = round_to_fault_domain(pre_rounding, policy.fault_domain_size)
    else:
        total = pre_rounding

    logger.debug(
        "baseline=%d eviction_safe=%d +%d spares=%d final=%d",
        baseline_minimum,
        eviction_safe,
        policy.node_redundancy,
        pre_rounding,
        total,
    )
    return eviction_safe, pre_rounding, total


def resolve_final_node_count(
    requirement: NodeRequirement, policy: SizingPolicy
) -> NodeRequirement:
    """Extends a solved requirement with the redundancy adjusted node counts

    An infeasible requirement has no meaningful node count and is returned
    unchanged. Resolving an already resolved requirement gives the same
    answer since only baseline_minimum is read.
    """
    if not requirement.feasible:
        return requirement

    eviction_safe, pre_rounding, total = resolve_node_count(
        requirement.baseline_minimum, policy
    )
    return requirement.model_copy(
        update={
            "eviction_safe_minimum": eviction_safe,
            "pre_rounding_total": pre_rounding,
            "total_nodes": total,
        }
    )
