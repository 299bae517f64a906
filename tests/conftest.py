"""Shared test fixtures for GraphTool tests.

This module provides common fixtures used across all test modules:
- Isolated audit directories and a scrubbed MSGRAPH* environment
- A complete, valid configuration
- A scriptable fake Graph client and an action context built around it

Usage:
    @pytest.mark.asyncio
    async def test_something(action_context, fake_client):
        fake_client.events = [{"id": "1", "subject": "Standup"}]
        ...
"""

import io
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from graphtool.actions.context import ActionContext
from graphtool.audit.sink import MemoryAuditLog
from graphtool.config import GraphToolConfig
from graphtool.resilience.cancellation import CancellationToken
from graphtool.resilience.retry import RetryPolicy


# ─────────────────────────────────────────────────────────────────────────────
# Path Constants
# ─────────────────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).parent.parent
PACKAGE_DIR = PROJECT_ROOT / "graphtool"

TENANT_ID = "11111111-2222-3333-4444-555555555555"
CLIENT_ID = "66666666-7777-8888-9999-000000000000"
MAILBOX = "user@example.com"


# ─────────────────────────────────────────────────────────────────────────────
# Environment Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def clean_env(monkeypatch) -> None:
    """Remove every MSGRAPH* variable so tests see only what they set."""
    import os

    for name in list(os.environ):
        if name.startswith("MSGRAPH"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def audit_dir(tmp_path: Path) -> Path:
    """Create a temporary directory for audit CSV files.

    Returns:
        Path to the audit directory
    """
    directory = tmp_path / "audit"
    directory.mkdir(parents=True, exist_ok=True)
    return directory


# ─────────────────────────────────────────────────────────────────────────────
# Configuration Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def sample_config() -> GraphToolConfig:
    """A complete configuration that passes validation."""
    return GraphToolConfig(
        tenant_id=TENANT_ID,
        client_id=CLIENT_ID,
        secret="super-secret-value",
        mailbox=MAILBOX,
        action="getevents",
    )


@pytest.fixture
def fast_policy() -> RetryPolicy:
    """Retry policy with millisecond delays so retry paths run quickly."""
    return RetryPolicy(max_retries=2, base_delay=0.001)


# ─────────────────────────────────────────────────────────────────────────────
# Graph Client Fixtures
# ─────────────────────────────────────────────────────────────────────────────


class FakeGraphClient:
    """Stand-in for GraphClient with canned data and scripted failures.

    ``failures[method]`` is a list of exceptions raised, in order, by the
    next calls to that method before it starts returning data.
    """

    def __init__(self):
        self.events: list[dict[str, Any]] = []
        self.messages: list[dict[str, Any]] = []
        self.schedules: list[dict[str, Any]] = []
        self.created_event: dict[str, Any] = {"id": "AAMkEvent123"}
        self.failures: dict[str, list[BaseException]] = {}
        self.calls: list[tuple[str, Any]] = []

    def _record(self, name: str, payload: Any) -> None:
        self.calls.append((name, payload))
        pending = self.failures.get(name)
        if pending:
            raise pending.pop(0)

    def call_count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    async def list_events(self, mailbox: str, top: int) -> list[dict[str, Any]]:
        self._record("list_events", {"mailbox": mailbox, "top": top})
        return self.events[:top]

    async def create_event(self, mailbox: str, event: dict[str, Any]) -> dict[str, Any]:
        self._record("create_event", {"mailbox": mailbox, "event": event})
        return self.created_event

    async def get_schedule(self, mailbox: str, request: dict[str, Any]) -> list[dict[str, Any]]:
        self._record("get_schedule", {"mailbox": mailbox, "request": request})
        return self.schedules

    async def list_messages(self, mailbox: str, top: int) -> list[dict[str, Any]]:
        self._record("list_messages", {"mailbox": mailbox, "top": top})
        return self.messages[:top]

    async def list_inbox_messages(self, mailbox: str, top: int) -> list[dict[str, Any]]:
        self._record("list_inbox_messages", {"mailbox": mailbox, "top": top})
        return self.messages[:top]

    async def find_messages(self, mailbox: str, internet_message_id: str) -> list[dict[str, Any]]:
        self._record("find_messages", {"mailbox": mailbox, "message_id": internet_message_id})
        return [m for m in self.messages if m.get("internetMessageId") == internet_message_id]

    async def send_mail(self, mailbox: str, message: dict[str, Any]) -> None:
        self._record("send_mail", {"mailbox": mailbox, "message": message})


@pytest.fixture
def fake_client() -> FakeGraphClient:
    return FakeGraphClient()


@pytest.fixture
def make_context(
    fake_client: FakeGraphClient, sample_config: GraphToolConfig, fast_policy: RetryPolicy
) -> Callable[..., ActionContext]:
    """Factory for an ActionContext around the fake client.

    Keyword arguments override config fields; the context writes to an
    in-memory audit sink and captures console output in ``ctx.out``.
    """

    def _make(cancel: CancellationToken | None = None, **overrides: Any) -> ActionContext:
        config = sample_config.model_copy(update=overrides)
        return ActionContext(
            client=fake_client,
            config=config,
            policy=fast_policy,
            audit=MemoryAuditLog(config.action),
            cancel=cancel,
            out=io.StringIO(),
        )

    return _make
