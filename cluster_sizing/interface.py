from __future__ import annotations

import math
from enum import Enum
from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from typing import Sequence

from pydantic import BaseModel
from pydantic import computed_field
from pydantic import ConfigDict
from pydantic import Field

MIB_IN_GIB = 1024
GIB_IN_TIB = 1024


class ExcludeUnsetModel(BaseModel):
    def model_dump(self, *args, **kwargs):
        if "exclude_unset" not in kwargs:
            kwargs["exclude_unset"] = True
        return super().model_dump(*args, **kwargs)

    def model_dump_json(self, *args, **kwargs):
        if "exclude_unset" not in kwargs:
            kwargs["exclude_unset"] = True
        return super().model_dump_json(*args, **kwargs)


class Dimension(str, Enum):
    """A resource dimension a cluster is sized along

    Declaration order is also the tie-break precedence when two dimensions
    require the same number of nodes.
    """

    cpu = "cpu"
    memory = "memory"
    storage = "storage"

    def __str__(self):
        return str(self.value)


class StorageBasis(str, Enum):
    """How the storage footprint of the source VMs is measured"""

    # Everything allocated to the VM disks, thin or not
    provisioned = "provisioned"
    # What the guests are actually consuming today
    in_use = "in-use"
    # Sum of the virtual disk capacities from the disk inventory
    disk_capacity = "disk-capacity"

    def __str__(self):
        return str(self.value)


class UtilizationStatus(str, Enum):
    good = "good"
    warning = "warning"
    critical = "critical"

    def __str__(self):
        return str(self.value)


###############################################################################
#              Models (structs) for how we describe hardware                  #
###############################################################################


class HardwareProfile(ExcludeUnsetModel):
    """Represents a bare metal node shape from the profile catalog

    Profiles are read only, the catalog replaces them wholesale on refresh.
    """

    name: str
    physical_cores: int = Field(
        ge=0,
        title="Physical cores",
        description="Cores available to the hypervisor before hyperthreading",
    )
    threads: int = Field(
        default=0,
        ge=0,
        title="Hardware threads (cores with hyperthreading)",
    )
    memory_gib: float = Field(ge=0)
    raw_storage_gib: float = Field(
        default=0,
        ge=0,
        title="Raw local flash capacity",
        description=(
            "Total capacity of the local NVMe devices before replication, "
            "operational headroom and metadata overhead are taken out."
        ),
    )
    storage_devices: int = Field(
        default=0,
        ge=0,
        title="Number of local NVMe devices",
        description=(
            "Each device runs its own storage daemon so storage service "
            "reservations scale with this count."
        ),
    )
    storage_device_gib: float = Field(default=0, ge=0)
    supports_target_platform: bool = True

    family: str = ""
    is_custom: bool = False
    description: str = ""

    model_config = ConfigDict(frozen=True)

    @property
    def has_local_storage(self) -> bool:
        return self.raw_storage_gib > 0

    @property
    def label(self) -> str:
        storage = (
            f"{self.storage_devices}x{self.storage_device_gib:g} GiB NVMe"
            if self.has_local_storage
            else "No NVMe"
        )
        return (
            f"{self.name} ({self.physical_cores}c/{self.threads}t, "
            f"{self.memory_gib:g} GiB, {storage})"
        )


class HardwareCatalogData(ExcludeUnsetModel):
    profiles: Dict[str, HardwareProfile] = {}


###############################################################################
#              Models (structs) for sizing policy                             #
###############################################################################


class ReservationPolicy(ExcludeUnsetModel):
    """Per node resources held back for the platform itself

    The storage service runs a base set of daemons on every node plus one
    daemon per local device, so its share grows with device count.
    """

    system_cpu: float = Field(default=1, ge=0, title="Cores for platform agents")
    system_memory_gib: float = Field(default=4, ge=0)
    storage_service_base_cpu: float = Field(default=5, ge=0)
    storage_service_per_device_cpu: float = Field(default=2, ge=0)
    storage_service_base_memory_gib: float = Field(default=21, ge=0)
    storage_service_per_device_memory_gib: float = Field(default=5, ge=0)

    model_config = ConfigDict(frozen=True)


class VirtualizationOverhead(ExcludeUnsetModel):
    """Per VM hypervisor overhead

    Fixed terms are charged once per VM (virt-launcher, QEMU process),
    proportional terms scale with the guest size (emulation, page tables).
    """

    cpu_fixed_per_vm: float = Field(default=0.27, ge=0)
    cpu_proportional_percent: float = Field(default=3, ge=0, le=100)
    memory_fixed_per_vm_mib: float = Field(default=378, ge=0)
    memory_proportional_percent: float = Field(default=3, ge=0, le=100)

    model_config = ConfigDict(frozen=True)


class SizingPolicy(ExcludeUnsetModel):
    """Operator choices that turn hardware and demand into a node count

    Every ratio is bounded here so the calculation pipeline never sees an
    unbounded or negative value, out of range input raises a
    pydantic.ValidationError naming the field and the violated bound.
    """

    cpu_overcommit: float = Field(default=4.0, ge=1, le=32)
    hyperthreading: bool = True
    hyperthreading_multiplier: float = Field(
        default=1.25,
        ge=1,
        le=2,
        title="Throughput gained from a core's second thread",
    )
    memory_overcommit: float = Field(default=1.0, ge=1, le=4)

    replication_factor: int = Field(default=3, ge=2, le=5)
    operational_capacity_percent: float = Field(
        default=75,
        gt=0,
        le=100,
        title="Share of usable storage that may be filled",
    )
    metadata_overhead_percent: float = Field(default=15, ge=0, lt=100)

    node_redundancy: int = Field(default=2, ge=0, le=10, title="N+X spare nodes")
    eviction_threshold_percent: float = Field(
        default=4,
        ge=0,
        lt=100,
        title="Share of node capacity held back before eviction starts",
        description=(
            "A value of 4 means nodes start evicting VMs at 96% utilization, "
            "the surviving cluster must fit the workload below that ceiling."
        ),
    )

    annual_growth_percent: float = Field(default=20, ge=0, le=200)
    planning_horizon_years: int = Field(default=2, ge=0, le=10)
    virtualization_storage_overhead_percent: float = Field(
        default=15,
        ge=0,
        le=100,
        title="Snapshot, clone and live migration scratch space",
    )

    quorum_floor: int = Field(default=3, ge=1)
    fault_domain_alignment: bool = True
    fault_domain_size: int = Field(default=3, ge=1)

    reservations: ReservationPolicy = ReservationPolicy()
    overhead: VirtualizationOverhead = VirtualizationOverhead()

    model_config = ConfigDict(frozen=True)

    @property
    def effective_hyperthreading_multiplier(self) -> float:
        return self.hyperthreading_multiplier if self.hyperthreading else 1.0

    @property
    def eviction_utilization_ceiling_percent(self) -> float:
        return 100 - self.eviction_threshold_percent

    def adjust(self, **changes: Any) -> SizingPolicy:
        """Returns a re-validated copy with some fields changed

        model_copy(update=...) skips validation, this does not. A dict given for
        a nested model only changes the fields it names.
        """
        merged = self.model_dump(exclude_unset=False)
        for key, value in changes.items():
            if isinstance(value, BaseModel):
                value = value.model_dump(exclude_unset=False)
            elif isinstance(value, dict) and isinstance(merged.get(key), dict):
                value = {**merged[key], **value}
            merged[key] = value
        return SizingPolicy(**merged)


###############################################################################
#              Models (structs) for how we describe the workload              #
###############################################################################


class WorkloadDemand(ExcludeUnsetModel):
    """Aggregate demand of the VMs being migrated, before any overhead"""

    vcpus: float = Field(default=0, ge=0)
    memory_gib: float = Field(default=0, ge=0)
    vm_count: int = Field(default=0, ge=0)

    provisioned_storage_gib: float = Field(default=0, ge=0)
    in_use_storage_gib: float = Field(default=0, ge=0)
    disk_capacity_storage_gib: float = Field(default=0, ge=0)
    storage_basis: StorageBasis = StorageBasis.in_use

    model_config = ConfigDict(frozen=True)

    @property
    def storage_gib(self) -> float:
        return {
            StorageBasis.provisioned: self.provisioned_storage_gib,
            StorageBasis.in_use: self.in_use_storage_gib,
            StorageBasis.disk_capacity: self.disk_capacity_storage_gib,
        }[self.storage_basis]

    def with_basis(self, basis: StorageBasis) -> WorkloadDemand:
        return self.model_copy(update={"storage_basis": StorageBasis(basis)})


class EffectiveDemand(ExcludeUnsetModel):
    """Workload demand with virtualization overhead and growth applied"""

    vm_count: int

    base_vcpus: float
    cpu_overhead_fixed: float
    cpu_overhead_proportional: float
    total_vcpus: int

    base_memory_gib: float
    memory_overhead_fixed_gib: float
    memory_overhead_proportional_gib: float
    total_memory_gib: float

    storage_basis: StorageBasis
    base_storage_gib: float
    growth_multiplier: float
    virtualization_overhead_multiplier: float
    total_storage_gib: float

    @property
    def cpu_overhead_total(self) -> float:
        return self.cpu_overhead_fixed + self.cpu_overhead_proportional

    @property
    def memory_overhead_total_gib(self) -> float:
        return self.memory_overhead_fixed_gib + self.memory_overhead_proportional_gib

    def total_for(self, dimension: Dimension) -> float:
        return {
            Dimension.cpu: float(self.total_vcpus),
            Dimension.memory: self.total_memory_gib,
            Dimension.storage: self.total_storage_gib,
        }[dimension]


###############################################################################
#              Models (structs) for calculation results                       #
###############################################################################


class Reservations(ExcludeUnsetModel):
    system_cpu: float
    storage_service_cpu: float
    system_memory_gib: float
    storage_service_memory_gib: float

    @computed_field(return_type=float)  # type: ignore
    @property
    def cpu(self):
        return self.system_cpu + self.storage_service_cpu

    @computed_field(return_type=float)  # type: ignore
    @property
    def memory_gib(self):
        return self.system_memory_gib + self.storage_service_memory_gib


class CapacityResult(ExcludeUnsetModel):
    """What one node of a profile can host once policy is applied

    The intermediate terms are kept so presentation and export layers can
    explain the figures without recomputing them.
    """

    profile_name: str

    vcpu_capacity: int
    memory_capacity_gib: int
    usable_storage_gib: int
    # Usable storage before the operational headroom is taken out
    max_usable_storage_gib: int

    physical_cores: int
    memory_gib: float
    raw_storage_gib: float
    reservations: Reservations
    available_cores: float
    effective_cores: float
    available_memory_gib: float
    storage_efficiency: float

    def capacity_for(self, dimension: Dimension) -> int:
        return {
            Dimension.cpu: self.vcpu_capacity,
            Dimension.memory: self.memory_capacity_gib,
            Dimension.storage: self.usable_storage_gib,
        }[dimension]


class NodeRequirement(ExcludeUnsetModel):
    demand: EffectiveDemand

    nodes_for_cpu: int
    nodes_for_memory: int
    nodes_for_storage: int
    limiting_dimension: Dimension
    quorum_floor: int
    # max(quorum floor, per dimension counts)
    baseline_minimum: int

    feasible: bool = True
    infeasible_dimensions: Sequence[Dimension] = ()

    # Filled in by the redundancy and fault domain resolver
    eviction_safe_minimum: Optional[int] = None
    pre_rounding_total: Optional[int] = None
    total_nodes: Optional[int] = None

    @property
    def resolved(self) -> bool:
        return self.total_nodes is not None

    @property
    def quorum_limited(self) -> bool:
        return self.baseline_minimum > max(
            self.nodes_for_cpu, self.nodes_for_memory, self.nodes_for_storage
        )

    def nodes_for(self, dimension: Dimension) -> int:
        return {
            Dimension.cpu: self.nodes_for_cpu,
            Dimension.memory: self.nodes_for_memory,
            Dimension.storage: self.nodes_for_storage,
        }[dimension]


class EfficiencySnapshot(ExcludeUnsetModel):
    """Per node load of the cluster in one scenario (healthy or degraded)"""

    total_nodes: int
    failed_nodes: int
    # Nodes the workload is spread over, never below the quorum floor
    surviving_nodes: int
    # Nodes actually left running, may be below the quorum floor
    remaining_nodes: int
    quorum_floor: int

    vms_per_node: int
    vcpus_per_node: int
    memory_gib_per_node: int

    cpu_utilization_percent: float
    memory_utilization_percent: float
    cpu_status: UtilizationStatus
    memory_status: UtilizationStatus

    storage_quorum_healthy: bool

    @property
    def degraded(self) -> bool:
        return self.failed_nodes > 0

    @property
    def data_at_risk(self) -> bool:
        return not self.storage_quorum_healthy

    @property
    def status(self) -> UtilizationStatus:
        order = list(UtilizationStatus)
        return max(self.cpu_status, self.memory_status, key=order.index)


class RedundancyValidation(ExcludeUnsetModel):
    total_nodes: int
    failed_nodes: int
    remaining_nodes: int

    eviction_ceiling_percent: float
    storage_operational_percent: float

    cpu_utilization_healthy: float
    memory_utilization_healthy: float
    storage_utilization_healthy: float
    cpu_utilization_after_failure: float
    memory_utilization_after_failure: float
    storage_utilization_after_failure: float

    cpu_passes: bool
    memory_passes: bool
    storage_passes: bool
    quorum_passes: bool

    @computed_field(return_type=bool)  # type: ignore
    @property
    def all_pass(self):
        return (
            self.cpu_passes
            and self.memory_passes
            and self.storage_passes
            and self.quorum_passes
        )


class BreakdownSegment(ExcludeUnsetModel):
    name: str
    value: float = Field(ge=0)
    description: str = ""


class ResourceBreakdown(ExcludeUnsetModel):
    """How the raw capacity of the cluster is spent along one dimension

    Segments are non-negative and never sum to more than raw_total, demand
    that does not fit is reported in overflow instead.
    """

    dimension: Dimension
    unit: str
    raw_total: float
    segments: List[BreakdownSegment]
    overflow: float = 0

    def segment(self, name: str) -> BreakdownSegment:
        for segment in self.segments:
            if segment.name == name:
                return segment
        raise KeyError(
            f"Unknown segment {name}. Try {[s.name for s in self.segments]}"
        )

    @property
    def allocated(self) -> float:
        return sum(s.value for s in self.segments)


class ClusterBreakdown(ExcludeUnsetModel):
    cpu: ResourceBreakdown
    memory: ResourceBreakdown
    storage: ResourceBreakdown

    def for_dimension(self, dimension: Dimension) -> ResourceBreakdown:
        return getattr(self, Dimension(dimension).value)


class SizingSummary(ExcludeUnsetModel):
    """Scalar hand-off for migration wave and cost estimation tooling"""

    node_count: int
    profile_name: str
    storage_tib: int

    @staticmethod
    def storage_tib_for(storage_gib: float) -> int:
        return int(math.ceil(storage_gib / GIB_IN_TIB))


class SizingPlan(ExcludeUnsetModel):
    profile: HardwareProfile
    policy: SizingPolicy
    capacity: CapacityResult
    requirement: NodeRequirement

    healthy: Optional[EfficiencySnapshot] = None
    degraded: Optional[EfficiencySnapshot] = None
    redundancy: Optional[RedundancyValidation] = None
    breakdown: Optional[ClusterBreakdown] = None
    summary: Optional[SizingSummary] = None

    @property
    def feasible(self) -> bool:
        return self.requirement.feasible
