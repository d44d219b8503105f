from cluster_sizing.interface import HardwareProfile
from cluster_sizing.interface import SizingPolicy
from cluster_sizing.interface import StorageBasis
from cluster_sizing.interface import WorkloadDemand

# Name of the bundled profile matching the reference node below
reference_profile_name = "bx2d.metal.64x256"

# 32 cores, 256 GiB and 8x3200 GiB NVMe
reference_profile = HardwareProfile(
    name="reference-32c-256g",
    physical_cores=32,
    threads=64,
    memory_gib=256,
    raw_storage_gib=8 * 3200,
    storage_devices=8,
    storage_device_gib=3200,
)

# Everything at the defaults except 5:1 CPU overcommit
reference_policy = SizingPolicy(cpu_overcommit=5.0)

# 1000 vCPU, 4000 GiB, 50 TiB in use across 250 VMs
reference_demand = WorkloadDemand(
    vcpus=1000,
    memory_gib=4000,
    vm_count=250,
    provisioned_storage_gib=80 * 1024,
    in_use_storage_gib=50 * 1024,
    disk_capacity_storage_gib=100 * 1024,
    storage_basis=StorageBasis.in_use,
)

no_storage_profile = HardwareProfile(
    name="compute-only",
    physical_cores=48,
    threads=96,
    memory_gib=384,
    supports_target_platform=False,
)

# Reservations (1 + 5 + 2*8 cores) exceed the 16 cores on offer
undersized_profile = HardwareProfile(
    name="undersized",
    physical_cores=16,
    threads=32,
    memory_gib=64,
    raw_storage_gib=8 * 960,
    storage_devices=8,
    storage_device_gib=960,
)
