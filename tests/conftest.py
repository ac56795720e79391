import pytest

from consensusbridge.config import debug_mode


@pytest.fixture(autouse=True, scope="session")
def _debug_assertions_on():
    # Run the suite with consistency checks on, whatever the environment says.
    with debug_mode(True):
        yield
