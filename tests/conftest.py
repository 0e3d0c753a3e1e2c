"""Shared fixtures: in-memory environments and a fake Secret Manager client."""
from types import SimpleNamespace

import pytest
from google.api_core import exceptions as gcp_exceptions

from mongorest_config.domains.environment import ConfigEnvironment, PropertySource
from mongorest_config.domains.gcp_client import GCPSecretClient
from mongorest_config.domains.sources import SecretManagerApiSource
from mongorest_config.workflows.source_chain import SourceChain


class FakeSecretManagerClient:
    """Stands in for SecretManagerServiceClient; payloads keyed by resource name."""

    def __init__(self, payloads=None, error=None):
        self.payloads = payloads or {}
        self.error = error
        self.requests = []
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True
        return False

    def access_secret_version(self, request, timeout=None):
        name = request["name"]
        self.requests.append((name, timeout))
        if self.error is not None:
            raise self.error
        if name not in self.payloads:
            raise gcp_exceptions.NotFound(f"Secret [{name}] not found or has no versions.")
        return SimpleNamespace(payload=SimpleNamespace(data=self.payloads[name]))


def secret_path(project_id, profile):
    return f"projects/{project_id}/secrets/webflux-mongodb-rest-{profile}/versions/latest"


@pytest.fixture
def fake_client():
    """Fake Secret Manager client with no secrets."""
    return FakeSecretManagerClient()


@pytest.fixture
def secret_client(fake_client):
    """GCPSecretClient wired to the fake client."""
    return GCPSecretClient(client_factory=lambda: fake_client)


@pytest.fixture
def chain(secret_client):
    """Source chain whose Secret Manager tier talks to the fake client."""
    return SourceChain(secret_manager=SecretManagerApiSource(client=secret_client))


@pytest.fixture
def make_environment():
    """Factory for environments with a fake OS environment and static properties."""
    def _make(environ=None, properties=None, profiles=()):
        environment = ConfigEnvironment(environ=environ or {})
        if properties:
            environment.add_last(PropertySource("application.yml", properties))
        if profiles:
            environment.set_active_profiles(*profiles)
        return environment
    return _make
