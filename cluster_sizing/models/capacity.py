"""Per node capacity of a hardware profile under a sizing policy

Both functions are pure: no state is kept between calls so they can be
re-run on every policy change.
"""

import logging
import math

from cluster_sizing.interface import CapacityResult
from cluster_sizing.interface import HardwareProfile
from cluster_sizing.interface import Reservations
from cluster_sizing.interface import SizingPolicy

logger = logging.getLogger(__name__)


def compute_reservations(
    profile: HardwareProfile, policy: SizingPolicy
) -> Reservations:
    """Cores and memory held back on every node for the platform

    The storage service share is linear in the profile's device count:

        base + per_device * storage_devices

    so it must be recomputed whenever the selected profile changes.
    """
    reserved = policy.reservations
    devices = profile.storage_devices
    return Reservations(
        system_cpu=reserved.system_cpu,
        storage_service_cpu=(
            reserved.storage_service_base_cpu
            + reserved.storage_service_per_device_cpu * devices
        ),
        system_memory_gib=reserved.system_memory_gib,
        storage_service_memory_gib=(
            reserved.storage_service_base_memory_gib
            + reserved.storage_service_per_device_memory_gib * devices
        ),
    )


def storage_efficiency(policy: SizingPolicy) -> float:
    """Fraction of raw flash that ends up holding VM data"""
    return (
        policy.operational_capacity_percent
        * (100 - policy.metadata_overhead_percent)
        / (policy.replication_factor * 100 * 100)
    )


def _usable_storage_gib(raw_gib: float, policy: SizingPolicy, operational: bool) -> int:
    # Multiply out the percentages before dividing so whole-number inputs stay
    # exact in floating point, e.g. 25600 * 75 * 85 / 30000 == 5440.0
    operational_percent = policy.operational_capacity_percent if operational else 100
    usable = (
        raw_gib
        * operational_percent
        * (100 - policy.metadata_overhead_percent)
        / (policy.replication_factor * 100 * 100)
    )
    return int(math.floor(usable))


def compute_capacity(profile: HardwareProfile, policy: SizingPolicy) -> CapacityResult:
    """Usable vCPU, memory and storage of a single node

        vcpu    = floor((cores - reserved) * ht_multiplier * cpu_overcommit)
        memory  = floor((memory - reserved) * memory_overcommit)
        storage = floor(raw * 1/replication * operational * (1 - metadata))

    When reservations exceed what the profile has the capacity is zero; the
    requirement solver reports that as infeasible rather than raising.
    """
    reservations = compute_reservations(profile, policy)

    available_cores = max(0.0, profile.physical_cores - reservations.cpu)
    effective_cores = available_cores * policy.effective_hyperthreading_multiplier
    vcpu_capacity = int(math.floor(effective_cores * policy.cpu_overcommit))

    available_memory_gib = max(0.0, profile.memory_gib - reservations.memory_gib)
    memory_capacity_gib = int(
        math.floor(available_memory_gib * policy.memory_overcommit)
    )

    raw_storage_gib = profile.raw_storage_gib
    usable_storage_gib = _usable_storage_gib(raw_storage_gib, policy, operational=True)
    max_usable_storage_gib = _usable_storage_gib(
        raw_storage_gib, policy, operational=False
    )

    if vcpu_capacity == 0 or memory_capacity_gib == 0:
        logger.debug(
            "Profile %s has no capacity left after reserving %s cores and %s GiB",
            profile.name,
            reservations.cpu,
            reservations.memory_gib,
        )

    return CapacityResult(
        profile_name=profile.name,
        vcpu_capacity=vcpu_capacity,
        memory_capacity_gib=memory_capacity_gib,
        usable_storage_gib=usable_storage_gib,
        max_usable_storage_gib=max_usable_storage_gib,
        physical_cores=profile.physical_cores,
        memory_gib=profile.memory_gib,
        raw_storage_gib=raw_storage_gib,
        reservations=reservations,
        available_cores=available_cores,
        effective_cores=effective_cores,
        available_memory_gib=available_memory_gib,
        storage_efficiency=storage_efficiency(policy),
    )
