"""
Pytest configuration and fixtures for Overseer tests.

This module provides shared fixtures used across unit and integration
tests.
"""

import logging
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from overseer.config import OverseerSettings, get_settings
from overseer.schema import ChatMessage, ChatSession, MessageRole, MessageUpdate
from overseer.supervision import SupervisionManager


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Make every test read settings afresh."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def restore_overseer_logger() -> Generator[None, None, None]:
    """Undo logger level/handlers installed by configure_logging (e.g. via the CLI)."""
    logger = logging.getLogger("overseer")
    level = logger.level
    handlers = list(logger.handlers)
    yield
    logger.setLevel(level)
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings() -> OverseerSettings:
    """Default settings, ignoring any .env file."""
    return OverseerSettings(_env_file=None)


@pytest.fixture
def manager(settings: OverseerSettings) -> SupervisionManager:
    """A manager with default settings."""
    return SupervisionManager(settings)


@pytest.fixture
def session() -> ChatSession:
    """A fresh chat session."""
    return ChatSession(id="session-1")


@pytest.fixture
def user_message() -> ChatMessage:
    """A harmless user message."""
    return ChatMessage.user("Hello, how are you?")


@pytest.fixture
def message_update() -> MessageUpdate:
    """A model response with one assistant message."""
    return MessageUpdate(
        updates=[ChatMessage(role=MessageRole.ASSISTANT, model_reply={"text": "Hi there"})],
        last_sync_id=3,
    )


@pytest.fixture
def sample_supervisors_yaml() -> str:
    """Return a supervisors YAML with a guardian and a collector."""
    return """
supervisors:
  - type: guardian
    id: guardian
    name: Content Guardian
    config:
      rules:
        - no profanity
        - no personal info
  - type: collection
    id: collector
    name: Message Collector
"""


@pytest.fixture
def sample_tool_servers_yaml() -> str:
    """Return a tool servers YAML with two servers."""
    return """
servers:
  fs:
    tool_enabled:
      server_default: true
      tools:
        delete_file: false
    tool_permission_required:
      server_default: false
      tools:
        write_file: true
    tools:
      - name: read_file
        description: Read a file
      - name: write_file
        description: Write a file
      - name: delete_file
        description: Delete a file
  web:
    tools:
      - name: fetch
        description: Fetch a URL
"""
