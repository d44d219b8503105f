"""Turns a VM inventory into the aggregate demand the sizing engine consumes

Only powered on, non-template VMs count towards demand. Operators can also
exclude VMs by name (retired or staying behind).
"""

import logging
from typing import AbstractSet
from typing import Iterable
from typing import Sequence

import numpy as np
from pydantic import Field

from cluster_sizing.interface import ExcludeUnsetModel
from cluster_sizing.interface import MIB_IN_GIB
from cluster_sizing.interface import StorageBasis
from cluster_sizing.interface import WorkloadDemand

logger = logging.getLogger(__name__)


class VirtualMachine(ExcludeUnsetModel):
    name: str
    vcpus: int = Field(default=0, ge=0)
    memory_mib: float = Field(default=0, ge=0)
    provisioned_mib: float = Field(default=0, ge=0)
    in_use_mib: float = Field(default=0, ge=0)
    # Sum of the VM's virtual disk capacities
    disk_capacity_mib: float = Field(default=0, ge=0)
    powered_on: bool = True
    template: bool = False


# Column order of the matrix built in aggregate_demand
_COLUMNS = (
    "vcpus",
    "memory_mib",
    "provisioned_mib",
    "in_use_mib",
    "disk_capacity_mib",
)


def counted(vm: VirtualMachine, excluded: AbstractSet[str]) -> bool:
    return vm.powered_on and not vm.template and vm.name not in excluded


def aggregate_demand(
    vms: Sequence[VirtualMachine],
    basis: StorageBasis = StorageBasis.in_use,
    excluded: Iterable[str] = (),
) -> WorkloadDemand:
    excluded = frozenset(excluded)

    values = np.array(
        [[getattr(vm, column) for column in _COLUMNS] for vm in vms],
        dtype=np.float64,
    ).reshape(-1, len(_COLUMNS))
    mask = np.array([counted(vm, excluded) for vm in vms], dtype=bool)

    totals = values[mask].sum(axis=0)
    vm_count = int(mask.sum())
    logger.debug(
        "Counted %d of %d VMs (%d excluded by name)",
        vm_count,
        len(vms),
        sum(1 for vm in vms if vm.name in excluded),
    )

    vcpus, memory_mib, provisioned_mib, in_use_mib, disk_capacity_mib = (
        float(t) for t in totals
    )
    return WorkloadDemand(
        vcpus=vcpus,
        memory_gib=memory_mib / MIB_IN_GIB,
        vm_count=vm_count,
        provisioned_storage_gib=provisioned_mib / MIB_IN_GIB,
        in_use_storage_gib=in_use_mib / MIB_IN_GIB,
        disk_capacity_storage_gib=disk_capacity_mib / MIB_IN_GIB,
        storage_basis=StorageBasis(basis),
    )
