import json
import os

import pytest

from cluster_sizing.hardware import HardwareCatalog
from cluster_sizing.hardware import load_profiles
from cluster_sizing.hardware import load_profiles_from_disk
from cluster_sizing.hardware import merge_profiles
from cluster_sizing.hardware.profiles import bundled_profile_paths
from cluster_sizing.hardware.profiles import bundled_profiles
from cluster_sizing.interface import HardwareCatalogData
from tests.util import reference_profile
from tests.util import reference_profile_name


def _write(path, profiles):
    with open(path, "w", encoding="utf-8") as fd:
        json.dump({"profiles": profiles}, fd)
    return path


def test_bundled_catalog(fresh_catalog):
    assert [p.name for p in bundled_profile_paths()] == ["bare_metal.json"]

    profile = fresh_catalog.profile(reference_profile_name)
    assert profile.physical_cores == 32
    assert profile.memory_gib == 256
    assert profile.storage_devices == 8
    assert profile.raw_storage_gib == 25600
    assert profile.family == "balanced"

    # Same node as the test fixture, only the catalog metadata differs
    metadata = {"name", "family", "description"}
    assert profile.model_dump(
        exclude_unset=False, exclude=metadata
    ) == reference_profile.model_dump(exclude_unset=False, exclude=metadata)


def test_supported_profiles(fresh_catalog):
    supported = fresh_catalog.supported()
    names = [p.name for p in supported]
    assert names == sorted(names)
    assert reference_profile_name in names
    assert "bx2.metal.96x384" not in names
    assert "bx2.metal.96x384" in fresh_catalog.profiles
    assert all(p.has_local_storage for p in supported)


def test_unknown_profile(fresh_catalog):
    with pytest.raises(KeyError, match="Try"):
        fresh_catalog.profile("bx9.metal.1x1")


def test_catalog_load_replaces(fresh_catalog):
    fresh_catalog.load(
        HardwareCatalogData(profiles={reference_profile.name: reference_profile})
    )
    assert list(fresh_catalog.profiles) == [reference_profile.name]
    with pytest.raises(KeyError):
        fresh_catalog.profile(reference_profile_name)


def test_catalog_is_lazy(monkeypatch):
    monkeypatch.delenv("HARDWARE_PROFILES", raising=False)
    catalog = HardwareCatalog()
    assert catalog._data is None  # pylint: disable=protected-access
    assert catalog.data is bundled_profiles



def test_catalog_merges_profiles_from_environment(tmp_path, monkeypatch):
    extra = _write(
        tmp_path / "extra.json",
        {"lab.metal.16x64": {"physical_cores": 16, "memory_gib": 64}},
    )
    monkeypatch.setenv("HARDWARE_PROFILES", str(extra))

    catalog = HardwareCatalog()
    assert "lab.metal.16x64" in catalog.profiles
    assert catalog.profile("lab.metal.16x64").physical_cores == 16
    # Bundled profiles are still there
    assert reference_profile_name in catalog.profiles
    assert set(bundled_profiles.profiles) < set(catalog.profiles)


def test_catalog_rejects_environment_duplicates(tmp_path, monkeypatch):
    clash = _write(
        tmp_path / "clash.json",
        {reference_profile_name: {"physical_cores": 16, "memory_gib": 64}},
    )
    monkeypatch.setenv("HARDWARE_PROFILES", str(clash))

    with pytest.raises(ValueError, match="Duplicate"):
        HardwareCatalog().profiles

def test_load_profiles_names_from_keys():
    data = load_profiles(
        {"profiles": {"tiny": {"physical_cores": 8, "memory_gib": 32}}}
    )
    assert data.profiles["tiny"].name == "tiny"
    assert not data.profiles["tiny"].has_local_storage

    with pytest.raises(ValueError):
        load_profiles(
            {
                "profiles": {
                    "tiny": {"name": "huge", "physical_cores": 8, "memory_gib": 1}
                }
            }
        )


def test_load_from_disk_merges(tmp_path):
    first = _write(
        tmp_path / "first.json", {"a": {"physical_cores": 8, "memory_gib": 32}}
    )
    second = _write(
        tmp_path / "second.json", {"b": {"physical_cores": 16, "memory_gib": 64}}
    )

    merged = load_profiles_from_disk([first, second])
    assert sorted(merged.profiles) == ["a", "b"]

    # A path string may carry several files
    merged = load_profiles_from_disk(f"{first}{os.pathsep}{second}")
    assert sorted(merged.profiles) == ["a", "b"]

    assert load_profiles_from_disk([]).profiles == {}
    assert load_profiles_from_disk(None).profiles == {}


def test_duplicate_profiles_are_rejected(tmp_path):
    first = _write(
        tmp_path / "first.json", {"a": {"physical_cores": 8, "memory_gib": 32}}
    )
    again = _write(
        tmp_path / "again.json", {"a": {"physical_cores": 16, "memory_gib": 64}}
    )
    with pytest.raises(ValueError, match="Duplicate"):
        load_profiles_from_disk([first, again])

    with pytest.raises(ValueError):
        merge_profiles(bundled_profiles, bundled_profiles)
