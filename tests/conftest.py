"""Shared fixtures for agent-subnet tests."""

import logging
import os
from pathlib import Path
from typing import Any, Dict

import pytest

from agent_subnet.config import AgentSubnetConfig
from agent_subnet.iac.emitters.terraform import EmitterContext


@pytest.fixture(autouse=True)
def clean_agent_subnet_env(monkeypatch):
    """Keep AGENT_SUBNET_* variables from the host out of every test."""
    for key in list(os.environ):
        if key.startswith("AGENT_SUBNET_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def run_config_data(tmp_path: Path) -> Dict[str, Any]:
    """Raw configuration of test run 5 writing into a temp directory."""
    return {
        "test_run_id": 5,
        "network": {
            "virtual_network_name": "ci-vnet",
            "resource_group_name": "ci-rg",
        },
        "terraform": {"working_dir": str(tmp_path / "tf")},
    }


@pytest.fixture
def run_config(run_config_data) -> AgentSubnetConfig:
    """Validated configuration of test run 5."""
    return AgentSubnetConfig.model_validate(run_config_data)


@pytest.fixture
def emitter_context() -> EmitterContext:
    """Fresh emitter context with an empty configuration."""
    return EmitterContext(terraform_config={"data": {}, "resource": {}, "output": {}})


@pytest.fixture(autouse=True)
def restore_root_logging():
    """Undo handler changes made by setup_logging inside CLI tests."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
