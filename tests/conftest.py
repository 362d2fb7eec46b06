from __future__ import annotations

import textwrap
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pytest

from notifyconf.core.config import ConfigurationTree
from notifyconf.core.contracts import (
    NotificationTemplate,
    NotificationTrigger,
    NotifiersConfig,
)


def _write_yaml(path: Path, content: str) -> Path:
    path.write_text(textwrap.dedent(content).strip() + "\n", encoding="utf-8")
    return path


class RecordingTriggerCompiler:
    """Trigger compiler double that keys the merged triggers by name."""

    def __init__(self) -> None:
        self.calls: list[tuple[list[NotificationTemplate], list[NotificationTrigger]]] = []

    def __call__(
        self,
        templates: Sequence[NotificationTemplate],
        triggers: Sequence[NotificationTrigger],
    ) -> Mapping[str, Any]:
        self.calls.append((list(templates), list(triggers)))
        return {trigger.name: trigger for trigger in triggers}


class RecordingNotifierBuilder:
    """Notifier builder double that returns one placeholder per configured notifier."""

    def __init__(self) -> None:
        self.calls: list[NotifiersConfig] = []

    def __call__(self, config: NotifiersConfig) -> Mapping[str, Any]:
        self.calls.append(config)
        return {name: f"notifier:{name}" for name in config.configured_names()}


@pytest.fixture
def trigger_compiler() -> RecordingTriggerCompiler:
    return RecordingTriggerCompiler()


@pytest.fixture
def notifier_builder() -> RecordingNotifierBuilder:
    return RecordingNotifierBuilder()


@pytest.fixture
def default_tree() -> ConfigurationTree:
    """Small baseline with two triggers, their templates, and a catch-all subscription."""

    return ConfigurationTree.model_validate(
        {
            "triggers": [
                {
                    "name": "on-sync-failed",
                    "condition": "app.status.operationState.phase in ['Error', 'Failed']",
                    "template": "app-sync-failed",
                },
                {
                    "name": "on-sync-succeeded",
                    "condition": "app.status.operationState.phase in ['Succeeded']",
                    "template": "app-sync-succeeded",
                },
            ],
            "templates": [
                {"name": "app-sync-failed", "title": "Sync failed", "body": "failed"},
                {"name": "app-sync-succeeded", "title": "Sync succeeded", "body": "ok"},
            ],
            "context": {"argocdUrl": "https://localhost:4000"},
            "subscriptions": [{"recipients": ["slack:ops"]}],
        }
    )


@pytest.fixture
def defaults_file(tmp_path: Path) -> Path:
    """Defaults document written to a temporary directory."""

    return _write_yaml(
        tmp_path / "defaults.yaml",
        """
        triggers:
          - name: on-created
            condition: "true"
            template: app-created
        templates:
          - name: app-created
            title: Application created
            body: Application has been created.
        context:
          region: eu
        subscriptions:
          - recipients: ["slack:audit"]
            triggers: ["on-created"]
            selector: "env in (prod,staging)"
        """,
    )
