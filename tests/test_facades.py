import pytest

from juju_client.facades import FacadeError, FacadeRegistry


@pytest.fixture
def registry():
    return FacadeRegistry({"Test": [0, 1], "Client": [42, 47, 3]})


def test_find_version_returns_supported_version(registry):
    assert registry.find_version("Test", 0) == 0
    assert registry.find_version("Test", 1) == 1


def test_find_version_defaults_to_latest(registry):
    assert registry.find_version("Test") == 1
    assert registry.find_version("Client") == 47


def test_find_version_unsupported(registry):
    assert registry.find_version("Test", 2) is None
    assert registry.find_version("ChangeSet", 1) is None
    assert registry.find_version("BadWolf") is None
    assert registry.find_version("BadWolf", 42) is None


def test_resolve_raises_for_unsupported_facades(registry):
    assert registry.resolve("Client", 42) == 42
    with pytest.raises(FacadeError, match="BadWolf"):
        registry.resolve("BadWolf")
    with pytest.raises(FacadeError, match="version 2"):
        registry.resolve("Test", 2)


def test_replace_drops_previous_entries(registry):
    registry.replace([{"name": "ModelManager", "versions": [2]}, {"name": "Pinger", "versions": [1]}])

    assert registry.as_dict() == {"ModelManager": [2], "Pinger": [1]}
    assert not registry.supports("Test")


def test_replace_with_nothing_empties_table(registry):
    registry.replace(None)
    assert registry.as_dict() == {}
