"""Versioned overhead constants and policy defaults

The bundled overhead.json tracks the published hypervisor and storage
service figures. Set OVERHEAD_REFERENCE to a file of the same shape to
size against different figures without touching the package.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any
from typing import Dict
from typing import Optional
from typing import Union

from pydantic import Field

from cluster_sizing.interface import ExcludeUnsetModel
from cluster_sizing.interface import ReservationPolicy
from cluster_sizing.interface import SizingPolicy
from cluster_sizing.interface import VirtualizationOverhead

logger = logging.getLogger(__name__)

BUNDLED_REFERENCE = Path(__file__).parent / "overhead.json"


class OverheadReference(ExcludeUnsetModel):
    version: str
    overhead: VirtualizationOverhead = VirtualizationOverhead()
    reservations: ReservationPolicy = ReservationPolicy()
    # Any SizingPolicy scalar field, validated when the policy is built
    policy: Dict[str, Any] = Field(default_factory=dict)


def load_overhead_reference(
    path: Optional[Union[str, Path]] = None,
) -> OverheadReference:
    if path is None:
        path = os.environ.get("OVERHEAD_REFERENCE") or BUNDLED_REFERENCE
    logger.debug("Loading overhead reference from: %s", path)
    with open(path, encoding="utf-8") as fd:
        reference = OverheadReference(**json.load(fd))
    logger.debug("Overhead reference version %s", reference.version)
    return reference


def default_policy(reference: Optional[OverheadReference] = None) -> SizingPolicy:
    if reference is None:
        reference = load_overhead_reference()
    unknown = set(reference.policy) - set(SizingPolicy.model_fields)
    if unknown:
        raise ValueError(
            f"Unknown policy fields {sorted(unknown)} in overhead reference "
            f"{reference.version}. Try {sorted(SizingPolicy.model_fields)}"
        )
    return SizingPolicy(
        **{
            **reference.policy,
            "reservations": reference.reservations,
            "overhead": reference.overhead,
        }
    )
