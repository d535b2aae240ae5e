import pytest

from geoattend.catalog.store import EntityStore
from geoattend.domain.models import GeospatialEntity

from helpers import KATHMANDU, make_entity


@pytest.fixture
def main_office() -> GeospatialEntity:
    return make_entity("Main Office Kathmandu", "KTM-MAIN-001", KATHMANDU, department_ids=["engineering"])


@pytest.fixture
def store(main_office) -> EntityStore:
    return EntityStore([main_office])
