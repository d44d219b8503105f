import pytest

from cluster_sizing import capacity_planner
from cluster_sizing import hardware
from cluster_sizing.hardware import HardwareCatalog


@pytest.fixture(autouse=True)
def fresh_catalog():
    """
    Give every test its own catalog backed by the bundled profiles.

    Tests are free to call catalog.load(...) without leaking custom
    profiles into the rest of the session.
    """
    test_catalog = HardwareCatalog()
    saved_catalog, saved_planner = hardware.catalog, capacity_planner.planner

    hardware.catalog = test_catalog
    capacity_planner.planner = capacity_planner.SizingPlanner(test_catalog)

    yield test_catalog

    hardware.catalog, capacity_planner.planner = saved_catalog, saved_planner
