import pytest
from pytest import approx

from cluster_sizing.interface import Dimension
from cluster_sizing.interface import SizingPolicy
from cluster_sizing.interface import StorageBasis
from cluster_sizing.interface import VirtualizationOverhead
from cluster_sizing.interface import WorkloadDemand
from cluster_sizing.models import compute_capacity
from cluster_sizing.models import compute_requirements
from cluster_sizing.models import effective_demand
from cluster_sizing.models.requirements import growth_multiplier
from cluster_sizing.models.requirements import limiting_dimension
from cluster_sizing.models.utils import nodes_needed
from cluster_sizing.models.utils import percent_of
from tests.util import no_storage_profile
from tests.util import reference_demand
from tests.util import reference_policy
from tests.util import reference_profile
from tests.util import undersized_profile


def test_growth_compounds():
    assert growth_multiplier(20, 2) == approx(1.44)
    assert growth_multiplier(20, 0) == 1
    assert growth_multiplier(0, 5) == 1
    assert growth_multiplier(10, 3) == approx(1.331)


def test_reference_effective_demand():
    effective = effective_demand(reference_policy, reference_demand)

    assert effective.cpu_overhead_fixed == approx(67.5)
    assert effective.cpu_overhead_proportional == approx(30)
    assert effective.cpu_overhead_total == approx(97.5)
    assert effective.total_vcpus == 1098

    # 250 VMs * 378 MiB
    assert effective.memory_overhead_fixed_gib == approx(92.28515625)
    assert effective.memory_overhead_proportional_gib == approx(120)
    assert effective.total_memory_gib == approx(4212.28515625)

    assert effective.base_storage_gib == 51200
    assert effective.growth_multiplier == approx(1.44)
    assert effective.virtualization_overhead_multiplier == approx(1.15)
    assert effective.total_storage_gib == approx(51200 * 1.44 * 1.15)


def test_storage_basis_selects_figure():
    for basis, expected in (
        (StorageBasis.provisioned, 80 * 1024),
        (StorageBasis.in_use, 50 * 1024),
        (StorageBasis.disk_capacity, 100 * 1024),
    ):
        demand = reference_demand.with_basis(basis)
        assert demand.storage_gib == expected
        effective = effective_demand(reference_policy, demand)
        assert effective.storage_basis == basis
        assert effective.base_storage_gib == expected

    # with_basis returns a new snapshot
    assert reference_demand.storage_basis == StorageBasis.in_use
    assert reference_demand.with_basis("provisioned").storage_basis == (
        StorageBasis.provisioned
    )


def test_custom_overhead_constants():
    policy = SizingPolicy(
        overhead=VirtualizationOverhead(
            cpu_fixed_per_vm=0,
            cpu_proportional_percent=0,
            memory_fixed_per_vm_mib=1024,
            memory_proportional_percent=0,
        )
    )
    effective = effective_demand(
        policy, WorkloadDemand(vcpus=10.5, memory_gib=10, vm_count=4)
    )
    assert effective.total_vcpus == 11
    assert effective.total_memory_gib == 14


def test_reference_requirements():
    capacity = compute_capacity(reference_profile, reference_policy)
    requirement = compute_requirements(capacity, reference_policy, reference_demand)

    assert requirement.feasible
    assert requirement.nodes_for_cpu == 18
    assert requirement.nodes_for_memory == 23
    assert requirement.nodes_for_storage == 16
    assert requirement.limiting_dimension == Dimension.memory
    assert requirement.baseline_minimum == 23
    assert not requirement.quorum_limited
    assert not requirement.resolved
    assert requirement.nodes_for(Dimension.storage) == 16


def test_tie_break_order():
    assert limiting_dimension(5, 5, 5) == Dimension.cpu
    assert limiting_dimension(4, 5, 5) == Dimension.memory
    assert limiting_dimension(4, 4, 5) == Dimension.storage
    assert limiting_dimension(5, 4, 5) == Dimension.cpu
    assert limiting_dimension(0, 0, 0) == Dimension.cpu


def test_zero_demand_is_quorum_limited():
    capacity = compute_capacity(reference_profile, reference_policy)
    requirement = compute_requirements(capacity, reference_policy, WorkloadDemand())

    assert requirement.feasible
    assert requirement.nodes_for_cpu == 0
    assert requirement.nodes_for_memory == 0
    assert requirement.nodes_for_storage == 0
    assert requirement.baseline_minimum == 3
    assert requirement.quorum_limited


def test_zero_capacity_is_infeasible():
    policy = SizingPolicy()
    capacity = compute_capacity(undersized_profile, policy)
    requirement = compute_requirements(capacity, policy, reference_demand)

    assert not requirement.feasible
    assert list(requirement.infeasible_dimensions) == [
        Dimension.cpu,
        Dimension.memory,
    ]
    assert requirement.limiting_dimension == Dimension.cpu
    assert requirement.nodes_for_cpu == 0
    assert requirement.nodes_for_storage > 0


def test_zero_capacity_without_demand_is_feasible():
    policy = SizingPolicy()
    capacity = compute_capacity(no_storage_profile, policy)

    requirement = compute_requirements(
        capacity, policy, WorkloadDemand(vcpus=100, memory_gib=200, vm_count=10)
    )
    assert requirement.feasible
    assert requirement.nodes_for_storage == 0

    requirement = compute_requirements(capacity, policy, reference_demand)
    assert not requirement.feasible
    assert list(requirement.infeasible_dimensions) == [Dimension.storage]


def test_nodes_needed():
    assert nodes_needed(0, 0) == 0
    assert nodes_needed(0, 10) == 0
    assert nodes_needed(1, 10) == 1
    assert nodes_needed(10, 10) == 1
    assert nodes_needed(10.5, 10) == 2
    with pytest.raises(ValueError):
        nodes_needed(1, 0)


def test_percent_of():
    assert percent_of(1, 4) == 25
    assert percent_of(0, 0) == 0
    assert percent_of(1, 0) == float("inf")
