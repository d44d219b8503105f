import logging
from importlib import resources
from pathlib import Path
from typing import List

from cluster_sizing.hardware import load_profiles_from_disk

logger = logging.getLogger(__name__)


def bundled_profile_paths() -> List[Path]:
    profiles_dir = Path(str(resources.files(__name__)))
    return sorted(profiles_dir.glob("*.json"))


_paths = bundled_profile_paths()
logger.info("Loading bundled hardware profiles from %s", [p.name for p in _paths])
bundled_profiles = load_profiles_from_disk(paths=_paths)
