import logging
from typing import List
from typing import Optional
from typing import Union

from cluster_sizing.hardware import catalog
from cluster_sizing.hardware import HardwareCatalog
from cluster_sizing.interface import HardwareProfile
from cluster_sizing.interface import SizingPlan
from cluster_sizing.interface import SizingPolicy
from cluster_sizing.interface import SizingSummary
from cluster_sizing.interface import WorkloadDemand
from cluster_sizing.models import allocate_breakdown
from cluster_sizing.models import analyze_efficiency
from cluster_sizing.models import compute_capacity
from cluster_sizing.models import compute_requirements
from cluster_sizing.models import resolve_final_node_count
from cluster_sizing.models import validate_redundancy

logger = logging.getLogger(__name__)


class SizingPlanner:
    """Runs the sizing pipeline for a profile, policy and demand snapshot

    capacity -> requirements -> redundancy -> efficiency -> breakdown

    The planner holds no state besides the catalog it resolves profile
    names against, so plans can be recomputed on every policy change.
    """

    def __init__(self, hardware_catalog: Optional[HardwareCatalog] = None):
        self._catalog: HardwareCatalog = (
            hardware_catalog if hardware_catalog is not None else catalog
        )

    @property
    def hardware_catalog(self) -> HardwareCatalog:
        return self._catalog

    def profile(self, name: str) -> HardwareProfile:
        return self.hardware_catalog.profile(name)

    def plan(
        self,
        profile: Union[HardwareProfile, str],
        policy: SizingPolicy,
        demand: WorkloadDemand,
        failed_nodes: Optional[int] = None,
    ) -> SizingPlan:
        """Sizes a cluster of one profile

        failed_nodes is the degraded scenario to analyze, the policy's node
        redundancy when not given.
        """
        if isinstance(profile, str):
            profile = self.profile(profile)
        if failed_nodes is None:
            failed_nodes = policy.node_redundancy

        capacity = compute_capacity(profile, policy)
        requirement = compute_requirements(capacity, policy, demand)
        if not requirement.feasible:
            logger.warning(
                "Cannot size %s: no capacity for %s",
                profile.name,
                ", ".join(str(d) for d in requirement.infeasible_dimensions),
            )
            return SizingPlan(
                profile=profile,
                policy=policy,
                capacity=capacity,
                requirement=requirement,
            )

        requirement = resolve_final_node_count(requirement, policy)
        total_nodes = requirement.total_nodes
        assert total_nodes is not None

        effective = requirement.demand
        healthy = analyze_efficiency(
            total_nodes, effective, capacity, quorum_floor=policy.quorum_floor
        )
        degraded = analyze_efficiency(
            total_nodes,
            effective,
            capacity,
            failed_nodes=failed_nodes,
            quorum_floor=policy.quorum_floor,
        )
        redundancy = validate_redundancy(
            requirement, capacity, policy, failed_nodes=failed_nodes
        )
        breakdown = allocate_breakdown(profile, policy, capacity, requirement)
        summary = SizingSummary(
            node_count=total_nodes,
            profile_name=profile.name,
            storage_tib=SizingSummary.storage_tib_for(effective.total_storage_gib),
        )

        logger.debug(
            "%s: %d nodes limited by %s",
            profile.name,
            total_nodes,
            requirement.limiting_dimension,
        )
        return SizingPlan(
            profile=profile,
            policy=policy,
            capacity=capacity,
            requirement=requirement,
            healthy=healthy,
            degraded=degraded,
            redundancy=redundancy,
            breakdown=breakdown,
            summary=summary,
        )

    def plan_all(
        self,
        policy: SizingPolicy,
        demand: WorkloadDemand,
        include_unsupported: bool = False,
        failed_nodes: Optional[int] = None,
    ) -> List[SizingPlan]:
        """Plans every catalog profile, best candidates first

        Feasible plans come before infeasible ones, then fewer nodes, then
        profile name so the order is stable.
        """
        profiles = (
            sorted(self.hardware_catalog.profiles.values(), key=lambda p: p.name)
            if include_unsupported
            else self.hardware_catalog.supported()
        )
        plans = [
            self.plan(profile, policy, demand, failed_nodes=failed_nodes)
            for profile in profiles
        ]

        def rank(plan: SizingPlan):
            nodes = plan.requirement.total_nodes
            return (
                not plan.feasible,
                nodes if nodes is not None else 0,
                plan.profile.name,
            )

        return sorted(plans, key=rank)


planner = SizingPlanner()
