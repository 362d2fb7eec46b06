"""Tests for the Dynaconf-backed defaults loader and the ConfigService facade."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from notifyconf.core.config import (
    DEFAULT_CONFIG_PATH,
    ConfigService,
    ConfigurationTree,
    load_default_config,
)
from notifyconf.core.errors import ConfigDecodeError, ConfigError

if TYPE_CHECKING:
    from conftest import RecordingNotifierBuilder, RecordingTriggerCompiler


def _write_yaml(path: Path, content: str) -> Path:
    path.write_text(textwrap.dedent(content).strip() + "\n", encoding="utf-8")
    return path


def test_packaged_defaults_load() -> None:
    tree = load_default_config()

    assert DEFAULT_CONFIG_PATH.exists()
    assert [trigger.name for trigger in tree.triggers] == [
        "on-sync-failed",
        "on-sync-running",
        "on-sync-succeeded",
        "on-health-degraded",
    ]
    assert all(trigger.enabled is False for trigger in tree.triggers)
    for trigger in tree.triggers:
        assert tree.template(trigger.template) is not None
    assert list(tree.context.values()) == ["https://localhost:4000"]


def test_defaults_file_loads_all_sections(defaults_file: Path) -> None:
    tree = load_default_config(defaults_file)

    assert tree.trigger("on-created").template == "app-created"
    assert tree.template("app-created").title == "Application created"
    assert list(tree.context.values()) == ["eu"]
    assert tree.subscriptions.get_recipients("on-created", {"env": "staging"}) == ["slack:audit"]
    assert tree.subscriptions.get_recipients("on-created", {"env": "dev"}) == []


def test_missing_defaults_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_default_config(tmp_path / "missing.yaml")


def test_invalid_defaults_file_raises(tmp_path: Path) -> None:
    path = _write_yaml(tmp_path / "defaults.yaml", "triggers: not-a-list")

    with pytest.raises(ConfigDecodeError) as excinfo:
        load_default_config(path)

    assert excinfo.value.source == str(path)


def test_service_resolves_against_defaults_file(
    defaults_file: Path,
    trigger_compiler: RecordingTriggerCompiler,
    notifier_builder: RecordingNotifierBuilder,
) -> None:
    service = ConfigService(
        trigger_compiler=trigger_compiler,
        notifier_builder=notifier_builder,
        config_path=defaults_file,
    )
    assert service.snapshot is None

    resolved = service.resolve(
        {"trigger.on-deleted": "condition: app.metadata.deletionTimestamp != nil"},
        {"notifiers.yaml": b"slack:\n  token: xoxb-1\n"},
    )

    assert sorted(resolved.triggers) == ["on-created", "on-deleted"]
    assert resolved.notifiers == {"slack": "notifier:slack"}
    assert service.snapshot is resolved


def test_service_keeps_explicit_defaults_on_refresh(
    default_tree: ConfigurationTree,
    trigger_compiler: RecordingTriggerCompiler,
    notifier_builder: RecordingNotifierBuilder,
) -> None:
    service = ConfigService(
        trigger_compiler=trigger_compiler,
        notifier_builder=notifier_builder,
        default_config=default_tree,
    )

    assert service.refresh() is default_tree
    assert service.default_config is default_tree


def test_service_refresh_reloads_defaults_file(
    defaults_file: Path,
    trigger_compiler: RecordingTriggerCompiler,
    notifier_builder: RecordingNotifierBuilder,
) -> None:
    service = ConfigService(
        trigger_compiler=trigger_compiler,
        notifier_builder=notifier_builder,
        config_path=defaults_file,
    )
    _write_yaml(
        defaults_file,
        """
        triggers:
          - name: on-updated
            condition: "true"
        """,
    )

    refreshed = service.refresh()

    assert [trigger.name for trigger in refreshed.triggers] == ["on-updated"]
    assert service.default_config is refreshed
