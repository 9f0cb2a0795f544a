"""Shared pytest configuration for marker registration and execution ordering."""

from __future__ import annotations

import pytest


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: fast isolated unit tests")
    config.addinivalue_line("markers", "integration: filesystem/HTTP integration tests")


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Run fast unit tests first and integration tests second."""

    def sort_key(item: pytest.Item) -> tuple[int, str]:
        if item.get_closest_marker("integration"):
            return (1, item.nodeid)
        return (0, item.nodeid)

    items.sort(key=sort_key)


@pytest.fixture(autouse=True)
def _isolated_paths(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory) -> None:
    """Keep every test away from the real ~/.config and ~/.cache files."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("GSD_AUTO_CHAIN_CONFIG", str(home / "gsd-auto-chain.json"))
    monkeypatch.setenv("GSD_AUTO_CHAIN_CACHE_DIR", str(home / "cache"))
