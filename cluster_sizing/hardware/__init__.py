# pylint: disable=cyclic-import
# in HardwareCatalog.data it imports from hardware.profiles dynamically
import json
import logging
import os
from functools import reduce
from pathlib import Path
from typing import Dict
from typing import List
from typing import Optional
from typing import Union

from cluster_sizing.interface import HardwareCatalogData
from cluster_sizing.interface import HardwareProfile

logger = logging.getLogger(__name__)


def load_profiles(data: Dict) -> HardwareCatalogData:
    """Builds catalog data from a {"profiles": {name: {...}}} document

    The profile name defaults to its key, a name that disagrees with the key
    is rejected.
    """
    profiles: Dict[str, HardwareProfile] = {}
    for key, fields in data.get("profiles", {}).items():
        fields = dict(fields)
        name = fields.setdefault("name", key)
        if name != key:
            raise ValueError(f"Profile keyed {key} is named {name}")
        profiles[key] = HardwareProfile(**fields)
    return HardwareCatalogData(profiles=profiles)


def merge_profiles(
    existing: HardwareCatalogData, override: HardwareCatalogData
) -> HardwareCatalogData:
    """Merge two catalogs, a profile may only be defined by one of them"""
    duplicates = existing.profiles.keys() & override.profiles.keys()
    if duplicates:
        raise ValueError(
            f"Duplicate profile {sorted(duplicates)}! "
            "Only one file should contain a profile"
        )
    return HardwareCatalogData(profiles={**existing.profiles, **override.profiles})


def load_profiles_from_disk(
    paths: Union[List[Path], Optional[str]] = None,
) -> HardwareCatalogData:
    """Loads and merges profile files, a string may hold several paths
    separated by os.pathsep
    """
    if isinstance(paths, str):
        paths = [Path(p) for p in paths.split(os.pathsep) if p]
    if paths is None:
        paths = []

    catalogs = [HardwareCatalogData()]
    for path in paths:
        logger.debug("Loading hardware profiles from: %s", path)
        with open(path, encoding="utf-8") as fd:
            catalogs.append(load_profiles(json.load(fd)))

    return reduce(merge_profiles, catalogs)


class HardwareCatalog:
    def __init__(self):
        self._data: Optional[HardwareCatalogData] = None

    def load(self, new_data: HardwareCatalogData) -> None:
        """Replaces the catalog wholesale, e.g. after a refresh"""
        self._data = new_data

    @property
    def data(self) -> HardwareCatalogData:
        if self._data is None:
            from cluster_sizing.hardware.profiles import bundled_profiles

            data = bundled_profiles
            extra = os.environ.get("HARDWARE_PROFILES")
            if extra:
                logger.info("Merging hardware profiles from: %s", extra)
                data = merge_profiles(data, load_profiles_from_disk(extra))
            self._data = data
        return self._data

    @property
    def profiles(self) -> Dict[str, HardwareProfile]:
        return self.data.profiles

    def profile(self, name: str) -> HardwareProfile:
        try:
            return self.profiles[name]
        except KeyError:
            raise KeyError(
                f"Unknown profile {name}. Try {sorted(self.profiles)}"
            ) from None

    def supported(self) -> List[HardwareProfile]:
        """Profiles that can run the target platform, by name"""
        return [
            self.profiles[name]
            for name in sorted(self.profiles)
            if self.profiles[name].supports_target_platform
        ]


catalog: HardwareCatalog = HardwareCatalog()
