"""
Contract tests call the internal cron hooks with a service-role user.

They reuse the per-service clients from tests/conftest.py.
"""

import pytest


@pytest.fixture
def as_service(acting_as, service_user):
    acting_as.set(service_user)
    return service_user
