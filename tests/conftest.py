from typing import Any, Callable

import pytest

from aacr2_assist.core.diagnostics import Diagnostics
from aacr2_assist.core.settings import Settings, get_settings
from aacr2_assist.rules.models import Rule
from aacr2_assist.rules.registry import RuleRegistry


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> None:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def baseline_rules() -> list[Rule]:
    return RuleRegistry.default().list_all()


@pytest.fixture
def diagnostics() -> Diagnostics:
    return Diagnostics()


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Build Settings from env-style keyword overrides, ignoring any .env file."""

    def _make(**overrides: Any) -> Settings:
        return Settings(_env_file=None, **overrides)

    return _make


@pytest.fixture
def settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings()

