from __future__ import annotations  # noqa: D100

import copy
import pytest

from pidctl.config import ENV_CFG, default_cfg


@pytest.fixture(autouse=True, scope="session")
def anyio_backend():
    "never use asyncio for testing"
    return "trio"


@pytest.fixture(autouse=True)
def no_user_cfg(monkeypatch):
    "Don't let the environment leak a config file into the tests."
    monkeypatch.delenv(ENV_CFG, raising=False)


@pytest.fixture
def cfg():
    "fixture for the static config"
    return copy.deepcopy(default_cfg())
