import os
import pytest
from landclassifier.config import get_settings

def pytest_configure():
    # no leer un .env local durante los tests
    os.environ.setdefault("LANDCLS_LOG_LEVEL", "WARNING")

@pytest.fixture(autouse=True)
def _reset_settings_cache():
    # evita fuga de estado entre tests
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()

def pytest_collection_modifyitems(items):
    for item in items:
        if "integration" in item.nodeid and os.environ.get("CI") == "true":
            item.add_marker(pytest.mark.slow)
