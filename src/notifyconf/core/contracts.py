"""
Records and collaborator interfaces shared by the configuration resolver.

Triggers and templates are treated as opaque documents identified by name:
only the fields the resolver needs are typed, notifier specific sections
(slack, webhook, teams, ...) are preserved as extra payload.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

DELETE_DIRECTIVE = "delete"


class NamedRecord(BaseModel):
    """Base for list entries that merge by ``name``."""

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    name: str = Field(default="")
    patch: str | None = Field(
        default=None,
        alias="$patch",
        description="Merge directive; `delete` removes the named entry from lower layers.",
    )

    @property
    def is_delete_marker(self) -> bool:
        return self.patch == DELETE_DIRECTIVE

    @classmethod
    def delete_marker(cls, name: str) -> NamedRecord:
        return cls.model_validate({"name": name, "$patch": DELETE_DIRECTIVE})

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class NotificationTrigger(NamedRecord):
    """Named condition that selects a template when it evaluates to true."""

    condition: str = Field(default="")
    description: str = Field(default="")
    template: str = Field(default="")
    enabled: bool | None = Field(default=None)


class NotificationTemplate(NamedRecord):
    """Named message template; notifier sections are kept as extra fields."""

    title: str = Field(default="")
    body: str = Field(default="")


class EmailOptions(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    host: str = Field(default="")
    port: int = Field(default=0)
    insecure_skip_verify: bool = Field(default=False)
    username: str = Field(default="")
    password: str = Field(default="")
    sender: str = Field(default="", alias="from")


class SlackOptions(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    token: str = Field(default="")
    username: str = Field(default="")
    icon: str = Field(default="")
    signing_secret: str = Field(
        default="", validation_alias=AliasChoices("signingSecret", "signing_secret")
    )
    channels: list[str] = Field(default_factory=list)


class OpsgenieOptions(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    api_url: str = Field(default="", validation_alias=AliasChoices("apiUrl", "api_url"))
    api_keys: dict[str, str] = Field(
        default_factory=dict, validation_alias=AliasChoices("apiKeys", "api_keys")
    )


class GrafanaOptions(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    api_url: str = Field(default="", validation_alias=AliasChoices("apiUrl", "api_url"))
    api_key: str = Field(default="", validation_alias=AliasChoices("apiKey", "api_key"))


class TelegramOptions(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    token: str = Field(default="")


class WebhookHeader(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value: str = Field(default="")


class BasicAuth(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str = Field(default="")
    password: str = Field(default="")


class WebhookOptions(BaseModel):
    """Named webhook target; each becomes its own notifier."""

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    name: str
    url: str = Field(default="")
    headers: list[WebhookHeader] = Field(default_factory=list)
    basic_auth: BasicAuth | None = Field(
        default=None, validation_alias=AliasChoices("basicAuth", "basic_auth")
    )


class NotifiersConfig(BaseModel):
    """Decoded `notifiers.yaml` secret entry."""

    model_config = ConfigDict(extra="allow", frozen=True)

    email: EmailOptions | None = Field(default=None)
    slack: SlackOptions | None = Field(default=None)
    opsgenie: OpsgenieOptions | None = Field(default=None)
    grafana: GrafanaOptions | None = Field(default=None)
    telegram: TelegramOptions | None = Field(default=None)
    webhook: list[WebhookOptions] = Field(default_factory=list)

    def configured_names(self) -> list[str]:
        """Identifiers of every notifier that has a configuration section."""

        names = [
            section
            for section in ("email", "slack", "opsgenie", "grafana", "telegram")
            if getattr(self, section) is not None
        ]
        names.extend(webhook.name for webhook in self.webhook)
        names.extend(sorted(self.model_extra or {}))
        return names


@runtime_checkable
class TriggerCompiler(Protocol):
    """Turns merged templates and triggers into executable triggers keyed by name."""

    def __call__(
        self,
        templates: Sequence[NotificationTemplate],
        triggers: Sequence[NotificationTrigger],
    ) -> Mapping[str, Any]: ...


@runtime_checkable
class NotifierBuilder(Protocol):
    """Turns decoded notifier settings into executable notifiers keyed by identifier."""

    def __call__(self, config: NotifiersConfig) -> Mapping[str, Any]: ...


__all__ = [
    "DELETE_DIRECTIVE",
    "BasicAuth",
    "EmailOptions",
    "GrafanaOptions",
    "NamedRecord",
    "NotificationTemplate",
    "NotificationTrigger",
    "NotifierBuilder",
    "NotifiersConfig",
    "OpsgenieOptions",
    "SlackOptions",
    "TelegramOptions",
    "TriggerCompiler",
    "WebhookHeader",
    "WebhookOptions",
]
