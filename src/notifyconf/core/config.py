"""
Layered notification configuration: decoding, merging, and resolution.

The effective configuration is built from three layers, lowest precedence
first: the packaged (or caller supplied) defaults, the consolidated
``config.yaml`` config map entry, and the individual ``template.<name>`` /
``trigger.<name>`` config map entries. Triggers and templates merge by name,
so an operator can add, replace, or delete single entries without restating
the whole list. Notifier settings come from the ``notifiers.yaml`` secret
entry and are decoded without merging.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, NamedTuple, TypeVar

import yaml
from dynaconf import Dynaconf
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from .contracts import (
    NamedRecord,
    NotificationTemplate,
    NotificationTrigger,
    NotifierBuilder,
    NotifiersConfig,
    TriggerCompiler,
)
from .errors import (
    ConfigDecodeError,
    ConfigError,
    MergeError,
    NotifiersDecodeError,
    TemplateDecodeError,
    TriggerDecodeError,
)
from .subscriptions import SubscriptionTable

logger = logging.getLogger(__name__)

CONFIG_KEY = "config.yaml"
NOTIFIERS_KEY = "notifiers.yaml"
TEMPLATE_PREFIX = "template"
TRIGGER_PREFIX = "trigger"
ENVVAR_PREFIX = "NOTIFYCONF"
DEFAULT_CONFIG_PATH = Path(__file__).with_name("defaults.yaml")

_TREE_SECTIONS = ("triggers", "templates", "context", "subscriptions")

RecordT = TypeVar("RecordT", bound=NamedRecord)


def _section(raw: Mapping[str, Any], key: str) -> Any:
    """Case-insensitive lookup helper; Dynaconf upper-cases top-level keys."""
    for candidate in (key, key.upper(), key.lower()):
        if candidate in raw:
            return raw[candidate]
    return None


def _load_mapping(text: str | None) -> dict[str, Any]:
    data = yaml.safe_load(text or "")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"expected a mapping, got {type(data).__name__}")
    return data


class ConfigurationTree(BaseModel):
    """
    Triggers, templates, context, and subscriptions of one configuration layer.

    Trees are immutable; :meth:`merge` always returns a new tree.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    triggers: list[NotificationTrigger] = Field(default_factory=list)
    templates: list[NotificationTemplate] = Field(default_factory=list)
    context: dict[str, str] = Field(default_factory=dict)
    subscriptions: SubscriptionTable = Field(default_factory=SubscriptionTable)

    @field_validator("triggers", "templates", "context", mode="before")
    @classmethod
    def _coerce_none(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return {} if info.field_name == "context" else []
        return value

    @classmethod
    def empty(cls) -> ConfigurationTree:
        return cls()

    def merge(self, patch: ConfigurationTree) -> ConfigurationTree:
        return merge(self, patch)

    def trigger(self, name: str) -> NotificationTrigger | None:
        return next((item for item in self.triggers if item.name == name), None)

    def template(self, name: str) -> NotificationTemplate | None:
        return next((item for item in self.templates if item.name == name), None)

    def without_delete_markers(self) -> ConfigurationTree:
        """Copy of the tree with deletion markers that matched nothing removed."""
        return self.model_copy(
            update={
                "triggers": [item for item in self.triggers if not item.is_delete_marker],
                "templates": [item for item in self.templates if not item.is_delete_marker],
            }
        )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class DecodedEntries:
    """Templates and triggers decoded from prefixed config map keys."""

    templates: list[NotificationTemplate] = field(default_factory=list)
    triggers: list[NotificationTrigger] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def as_tree(self) -> ConfigurationTree:
        return ConfigurationTree(templates=list(self.templates), triggers=list(self.triggers))


class ResolvedConfig(NamedTuple):
    """Compiled triggers, compiled notifiers, and the merged tree they came from."""

    triggers: Mapping[str, Any]
    notifiers: Mapping[str, Any]
    config: ConfigurationTree


def decode_config_map(entries: Mapping[str, str]) -> DecodedEntries:
    """
    Decode ``template.<name>`` and ``trigger.<name>`` entries of a config map.

    Keys are matched by substring prefix, so ``triggered.x`` and
    ``trigger-foo`` are trigger entries too. The entity name is everything
    after the first dot and always overrides a ``name`` inside the body.
    ``config.yaml`` is skipped; any other key is ignored with a warning.
    """

    templates: list[NotificationTemplate] = []
    triggers: list[NotificationTrigger] = []
    warnings: list[str] = []
    for key, value in entries.items():
        if key == CONFIG_KEY:
            continue
        name = ".".join(key.split(".")[1:])
        if key.startswith(TEMPLATE_PREFIX):
            try:
                body = _load_mapping(value)
                templates.append(NotificationTemplate.model_validate({**body, "name": name}))
            except (yaml.YAMLError, ValueError) as exc:
                raise TemplateDecodeError(name, exc) from exc
            continue
        if key.startswith(TRIGGER_PREFIX):
            try:
                body = _load_mapping(value)
                triggers.append(NotificationTrigger.model_validate({**body, "name": name}))
            except (yaml.YAMLError, ValueError) as exc:
                raise TriggerDecodeError(name, exc) from exc
            continue
        logger.warning("Key %s does not match to pattern, ignored", key)
        warnings.append(f"Key {key} does not match to pattern, ignored")
    return DecodedEntries(templates=templates, triggers=triggers, warnings=warnings)


def decode_config_document(text: str | None, *, source: str = CONFIG_KEY) -> ConfigurationTree:
    """Decode a consolidated YAML document into a :class:`ConfigurationTree`."""
    try:
        return ConfigurationTree.model_validate(_load_mapping(text))
    except (yaml.YAMLError, ValueError) as exc:
        raise ConfigDecodeError(source, exc) from exc


def _merge_named(
    base: Sequence[RecordT], patch: Sequence[RecordT], kind: str
) -> list[RecordT]:
    merged: dict[str, RecordT] = {}
    for item in base:
        merged[item.name] = item
    for item in patch:
        current = merged.get(item.name)
        if item.is_delete_marker and current is not None and not current.is_delete_marker:
            del merged[item.name]
            logger.debug("Removed %s %s", kind, item.name)
            continue
        # Assigning to an existing key keeps the base position.
        merged[item.name] = item
    return [item.model_copy(deep=True) for item in merged.values()]


def merge(base: ConfigurationTree, patch: ConfigurationTree) -> ConfigurationTree:
    """
    Layer ``patch`` over ``base`` and return a new tree.

    * context: key-wise union, patch wins.
    * triggers/templates: keyed by name. Base order is kept, a same-name
      patch record replaces the whole base record in place, new names are
      appended in patch order. A ``$patch: delete`` record removes the named
      base entry; with nothing to remove it is kept for the next layer.
    * subscriptions: replaced wholesale when the patch has any.
    """

    subscriptions = patch.subscriptions if len(patch.subscriptions) else base.subscriptions
    try:
        return ConfigurationTree(
            triggers=_merge_named(base.triggers, patch.triggers, "trigger"),
            templates=_merge_named(base.templates, patch.templates, "template"),
            context={**base.context, **patch.context},
            subscriptions=subscriptions.model_copy(deep=True),
        )
    except ValidationError as exc:
        raise MergeError(f"Failed to merge configuration trees: {exc}") from exc


def parse_config_map(entries: Mapping[str, str]) -> ConfigurationTree:
    """
    Build the cluster layer from config map data.

    ``config.yaml`` is the base and the prefixed entries are layered on top,
    so ``trigger.<name>`` wins over a same-name trigger in ``config.yaml``.
    """

    scanned = decode_config_map(entries)
    explicit = ConfigurationTree.empty()
    if CONFIG_KEY in entries:
        explicit = decode_config_document(entries[CONFIG_KEY])
    return merge(explicit, scanned.as_tree())


def parse_secret(secret_data: Mapping[str, bytes | str]) -> NotifiersConfig:
    """Decode the ``notifiers.yaml`` secret entry; a missing entry means no notifiers."""
    raw = secret_data.get(NOTIFIERS_KEY)
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return NotifiersConfig.model_validate(_load_mapping(raw))
    except (yaml.YAMLError, ValueError) as exc:
        raise NotifiersDecodeError(exc) from exc


def _tree_from_settings(settings: Dynaconf, *, source: str) -> ConfigurationTree:
    raw = settings.as_dict()
    data = {key: _section(raw, key) for key in _TREE_SECTIONS}
    try:
        return ConfigurationTree.model_validate(data)
    except ValidationError as exc:
        raise ConfigDecodeError(source, exc) from exc


def load_default_config(
    config_path: str | Path | None = None,
    *,
    settings: Dynaconf | None = None,
) -> ConfigurationTree:
    """
    Load the baseline configuration tree.

    The YAML file is read through Dynaconf, so ``NOTIFYCONF_`` environment
    variables can override its values. Without a path the packaged
    ``defaults.yaml`` is used.
    """

    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if settings is None:
        if not path.exists():
            raise ConfigError(f"Default configuration file {path} not found.")
        settings = Dynaconf(
            envvar_prefix=ENVVAR_PREFIX,
            settings_files=[str(path)],
            environments=False,
            load_dotenv=False,
        )
    return _tree_from_settings(settings, source=str(path))


def parse_config(
    config_map_data: Mapping[str, str],
    secret_data: Mapping[str, bytes | str],
    default_config: ConfigurationTree,
    trigger_compiler: TriggerCompiler,
    notifier_builder: NotifierBuilder,
) -> ResolvedConfig:
    """
    Resolve compiled triggers and notifiers from config map and secret data.

    Errors raised by ``trigger_compiler`` and ``notifier_builder`` propagate
    unchanged. Nothing is returned unless every step succeeds.
    """

    root = parse_config_map(config_map_data)
    merged = merge(default_config, root)
    dangling = [
        item.name for item in (*merged.triggers, *merged.templates) if item.is_delete_marker
    ]
    if dangling:
        logger.debug("Dropping deletion markers without a target: %s", ", ".join(dangling))
        merged = merged.without_delete_markers()

    triggers = trigger_compiler(merged.templates, merged.triggers)
    notifiers_config = parse_secret(secret_data)
    notifiers = notifier_builder(notifiers_config)
    logger.info(
        "Resolved %d trigger(s), %d template(s), %d notifier(s), %d subscription(s)",
        len(merged.triggers),
        len(merged.templates),
        len(notifiers),
        len(merged.subscriptions),
    )
    return ResolvedConfig(triggers=triggers, notifiers=notifiers, config=merged)


class ConfigService:
    """
    Facade that keeps the default layer and collaborators for repeated resolution.
    """

    def __init__(
        self,
        *,
        trigger_compiler: TriggerCompiler,
        notifier_builder: NotifierBuilder,
        default_config: ConfigurationTree | None = None,
        config_path: str | Path | None = None,
        settings: Dynaconf | None = None,
    ) -> None:
        self._trigger_compiler = trigger_compiler
        self._notifier_builder = notifier_builder
        self._config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self._settings = settings
        self._fixed_defaults = default_config is not None
        if default_config is None:
            default_config = load_default_config(self._config_path, settings=settings)
        self._default_config = default_config
        self._snapshot: ResolvedConfig | None = None

    @property
    def default_config(self) -> ConfigurationTree:
        return self._default_config

    @property
    def snapshot(self) -> ResolvedConfig | None:
        """Result of the latest successful :meth:`resolve` call."""
        return self._snapshot

    def refresh(self) -> ConfigurationTree:
        """Reload the defaults file; explicitly supplied defaults are kept as is."""
        if self._fixed_defaults:
            return self._default_config
        if self._settings is not None:
            self._settings.reload()
        self._default_config = load_default_config(self._config_path, settings=self._settings)
        return self._default_config

    def resolve(
        self,
        config_map_data: Mapping[str, str],
        secret_data: Mapping[str, bytes | str],
    ) -> ResolvedConfig:
        resolved = parse_config(
            config_map_data,
            secret_data,
            self._default_config,
            self._trigger_compiler,
            self._notifier_builder,
        )
        self._snapshot = resolved
        return resolved


__all__ = [
    "CONFIG_KEY",
    "DEFAULT_CONFIG_PATH",
    "NOTIFIERS_KEY",
    "ConfigService",
    "ConfigurationTree",
    "DecodedEntries",
    "ResolvedConfig",
    "decode_config_document",
    "decode_config_map",
    "load_default_config",
    "merge",
    "parse_config",
    "parse_config_map",
    "parse_secret",
]
