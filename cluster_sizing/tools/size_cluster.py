import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from typing import Sequence

from cluster_sizing.capacity_planner import SizingPlanner
from cluster_sizing.defaults import default_policy
from cluster_sizing.hardware import HardwareCatalog
from cluster_sizing.hardware import load_profiles_from_disk
from cluster_sizing.hardware import merge_profiles
from cluster_sizing.interface import SizingPlan
from cluster_sizing.interface import SizingPolicy
from cluster_sizing.interface import StorageBasis
from cluster_sizing.interface import WorkloadDemand

logger = logging.getLogger(__name__)

EXIT_INFEASIBLE = 1
EXIT_INVALID_INPUT = 2

_STORAGE_FIELDS = {
    StorageBasis.provisioned: "provisioned_storage_gib",
    StorageBasis.in_use: "in_use_storage_gib",
    StorageBasis.disk_capacity: "disk_capacity_storage_gib",
}


def _read_json(path: Path) -> Dict[str, Any]:
    with open(path, encoding="utf-8") as fd:
        return json.load(fd)


def load_demand(args: Any) -> WorkloadDemand:
    if args.demand is not None:
        demand = WorkloadDemand(**_read_json(args.demand))
        if args.storage_basis is not None:
            demand = demand.with_basis(StorageBasis(args.storage_basis))
        return demand
    basis = StorageBasis(args.storage_basis or StorageBasis.in_use)
    return WorkloadDemand(
        vcpus=args.vcpus,
        memory_gib=args.memory_gib,
        vm_count=args.vms,
        storage_basis=basis,
        **{_STORAGE_FIELDS[basis]: args.storage_gib},
    )


def load_policy(args: Any) -> SizingPolicy:
    policy = default_policy()
    if args.policy is not None:
        policy = policy.adjust(**_read_json(args.policy))
    return policy


def build_planner(extra_profiles: Optional[Sequence[Path]]) -> SizingPlanner:
    hardware_catalog = HardwareCatalog()
    if extra_profiles:
        extra = load_profiles_from_disk(list(extra_profiles))
        hardware_catalog.load(merge_profiles(hardware_catalog.data, extra))
    return SizingPlanner(hardware_catalog)


def _render(plan: SizingPlan, summary: bool) -> Any:
    if summary:
        if plan.summary is None:
            return {"profile_name": plan.profile.name, "feasible": False}
        return plan.summary.model_dump(mode="json")
    return plan.model_dump(mode="json")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="size-cluster",
        description=(
            "Size a bare metal cluster for a VM workload: node count, per node "
            "capacity and utilization after node failures"
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--demand",
        type=Path,
        help="JSON file holding a WorkloadDemand, overrides the --vcpus style flags",
    )
    parser.add_argument("--vcpus", type=float, default=0)
    parser.add_argument("--memory-gib", type=float, default=0)
    parser.add_argument(
        "--storage-gib",
        type=float,
        default=0,
        help="Storage demand measured on --storage-basis",
    )
    parser.add_argument("--vms", type=int, default=0, help="Number of VMs")
    parser.add_argument(
        "--storage-basis",
        choices=[str(b) for b in StorageBasis],
        default=None,
        help="Storage measurement to size on, in-use unless the demand file says",
    )

    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--profile", help="Hardware profile name")
    target.add_argument(
        "--all", action="store_true", help="Plan every supported profile"
    )
    parser.add_argument(
        "--include-unsupported",
        action="store_true",
        help="With --all also plan profiles that cannot run the target platform",
    )
    parser.add_argument(
        "--hardware-profiles",
        type=Path,
        action="append",
        help="Extra profile JSON files merged with the bundled catalog",
    )
    parser.add_argument(
        "--policy",
        type=Path,
        help="JSON file of SizingPolicy fields that override the defaults",
    )
    parser.add_argument(
        "--failed-nodes",
        type=int,
        default=None,
        help="Node failures in the degraded scenario, node redundancy if unset",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Only print node count, profile and storage TiB",
    )
    parser.add_argument("--debug", action="store_true", help="Show verbose output")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        demand = load_demand(args)
        policy = load_policy(args)
        sizing_planner = build_planner(args.hardware_profiles)
        if args.all:
            plans = sizing_planner.plan_all(
                policy,
                demand,
                include_unsupported=args.include_unsupported,
                failed_nodes=args.failed_nodes,
            )
        else:
            plans = [
                sizing_planner.plan(
                    args.profile, policy, demand, failed_nodes=args.failed_nodes
                )
            ]
    except (ValueError, KeyError, OSError) as exp:
        # pydantic.ValidationError and json.JSONDecodeError are ValueErrors
        logger.debug("Invalid input", exc_info=True)
        print(f"ERROR: {exp}", file=sys.stderr)
        return EXIT_INVALID_INPUT

    rendered = [_render(plan, args.summary) for plan in plans]
    print(json.dumps(rendered if args.all else rendered[0], indent=2))

    if not any(plan.feasible for plan in plans):
        print("ERROR: no profile can host this workload", file=sys.stderr)
        return EXIT_INFEASIBLE
    return 0


if __name__ == "__main__":
    sys.exit(main())
