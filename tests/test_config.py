"""
Tests for settings, runtime config, errors and logging helpers.
"""

import asyncio
import logging

import pytest

from agent_runtime.config import AgentRuntimeConfig, MemoryConfig, Settings, ToolManagerConfig
from agent_runtime.errors import (
  ErrorKind,
  ExecutionTimeoutError,
  NotFoundError,
  ResourceLimitError,
)
from agent_runtime.logs import ROOT_LOGGER, configure_logging, get_logger, parse_level


class TestSettings:
  def test_defaults(self, monkeypatch):
    for name in ("AGENT_MAX_CONCURRENT", "MEMORY_SHORT_TERM_SIZE", "TOOL_PERMISSION_CHECK"):
      monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None)

    assert settings.AGENT_MAX_REASONING_STEPS == 50
    assert settings.AGENT_REASONING_TIMEOUT_SECONDS == 300.0
    assert settings.AGENT_MAX_CONCURRENT == 100
    assert settings.MEMORY_COMPRESSION_THRESHOLD == 80
    assert settings.TOOL_DEFAULT_TIMEOUT_SECONDS == 30.0
    assert settings.TOOL_MAX_CONCURRENT_CALLS == 50

  def test_environment_overrides(self, monkeypatch):
    monkeypatch.setenv("AGENT_MAX_CONCURRENT", "5")
    monkeypatch.setenv("MEMORY_SHORT_TERM_SIZE", "12")
    monkeypatch.setenv("TOOL_PERMISSION_CHECK", "false")
    settings = Settings(_env_file=None)

    runtime_config = AgentRuntimeConfig.from_settings(settings)
    tool_config = ToolManagerConfig.from_settings(settings)

    assert runtime_config.max_concurrent_agents == 5
    assert runtime_config.memory_config.short_term_memory_size == 12
    assert tool_config.enable_permission_check is False

  def test_dataclass_defaults_match_settings(self):
    assert MemoryConfig() == MemoryConfig.from_settings(Settings(_env_file=None))


class TestErrors:
  def test_to_dict(self):
    error = NotFoundError("Agent 'x' not found", {"agent_id": "x"})

    assert error.to_dict() == {
      "error": "not_found",
      "detail": "Agent 'x' not found",
      "context": {"agent_id": "x"},
    }
    assert ResourceLimitError("full").to_dict() == {"error": "resource_limit", "detail": "full"}

  def test_timeout_error_is_asyncio_timeout(self):
    error = ExecutionTimeoutError("Tool 'slow'", 0.5)

    assert isinstance(error, asyncio.TimeoutError)
    assert error.kind == ErrorKind.TIMEOUT
    assert error.message == "Tool 'slow' timed out after 0.5s"


class TestLogging:
  def test_loggers_nest_under_root(self):
    assert get_logger("agent_runtime.agent.memory").name == "agent_runtime.agent.memory"
    assert get_logger("tests").name == f"{ROOT_LOGGER}.tests"

  def test_parse_level(self):
    assert parse_level("WARN") == logging.WARNING
    with pytest.raises(ValueError):
      parse_level("loud")

  def test_configure_logging_is_idempotent(self):
    logger = configure_logging("debug")
    configure_logging("info")

    marked = [h for h in logger.handlers if getattr(h, "_agent_runtime_handler", False)]
    assert len(marked) == 1
    assert logger.level == logging.INFO
