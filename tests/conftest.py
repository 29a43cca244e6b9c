import datetime

import pytest

from nightframe.config import Config
from nightframe.recommender import EquipmentProfile, ObserverContext


def pytest_addoption(parser):
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run tests marked as integration",
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--integration"):
        return

    for item in items:
        if "integration" in item.keywords:
            item.add_marker(
                pytest.mark.skip(
                    reason="need --integration option to run integration tests"
                )
            )


@pytest.fixture
def offline_config():
    # Dynamic catalog disabled so nothing reaches the network.
    return Config({"catalog": {"enabled": False}})


@pytest.fixture
def winter_observer():
    # Mid-January evening on the US east coast; Orion is well placed.
    return ObserverContext(
        latitude_deg=40.0,
        longitude_deg=-75.0,
        when_utc=datetime.datetime(2025, 1, 15, 2, 0, tzinfo=datetime.timezone.utc),
    )


@pytest.fixture
def aps_c_equipment():
    return EquipmentProfile(
        sensor_width_mm=23.5,
        sensor_height_mm=15.6,
        focal_mm=200.0,
        f_number=4.0,
        pixel_um=3.76,
    )
