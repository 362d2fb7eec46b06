"""
Default subscriptions: routing rules that map triggers and labels to recipients.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    RootModel,
    field_serializer,
    field_validator,
)

from .selectors import LabelSelector, parse_selector

logger = logging.getLogger(__name__)


class Subscription(BaseModel):
    """
    Recipients notified for a set of triggers on resources matching a selector.

    An empty trigger list matches every trigger and an empty selector matches
    every label set. The selector is parsed when the subscription is built,
    so malformed expressions surface as ``InvalidSelectorSyntax`` at decode
    time rather than while routing.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, populate_by_name=True)

    recipients: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("recipients", "Recipients")
    )
    triggers: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("triggers", "Triggers")
    )
    selector: LabelSelector = Field(
        default_factory=LabelSelector.empty,
        validation_alias=AliasChoices("selector", "Selector"),
    )

    @field_validator("recipients", "triggers", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> Any:
        if value is None:
            return []
        return value

    @field_validator("selector", mode="before")
    @classmethod
    def _parse_selector(cls, value: Any) -> Any:
        if isinstance(value, LabelSelector):
            return value
        if value is None or isinstance(value, str):
            return parse_selector(value)
        return value

    @field_serializer("selector")
    def _serialize_selector(self, selector: LabelSelector) -> str:
        return str(selector)

    @classmethod
    def decode(
        cls,
        selector: str | None,
        triggers: Sequence[str] | None = None,
        recipients: Sequence[str] | None = None,
    ) -> Subscription:
        return cls(
            selector=parse_selector(selector),
            triggers=list(triggers or []),
            recipients=list(recipients or []),
        )

    def encode(self) -> str:
        """Canonical selector text; an empty selector encodes as ``""``."""
        return str(self.selector)

    def matches_trigger(self, trigger: str) -> bool:
        if not self.triggers:
            return True
        return trigger in self.triggers

    def matches(self, trigger: str, labels: Mapping[str, str] | None) -> bool:
        return self.matches_trigger(trigger) and self.selector.matches(labels)


class SubscriptionTable(RootModel[list[Subscription]]):
    """Ordered list of subscriptions with recipient lookup."""

    model_config = ConfigDict(frozen=True)

    root: list[Subscription] = Field(default_factory=list)

    @field_validator("root", mode="before")
    @classmethod
    def _coerce_none(cls, value: Any) -> Any:
        if value is None:
            return []
        return value

    def __iter__(self) -> Iterator[Subscription]:  # type: ignore[override]
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)

    def __getitem__(self, index: int) -> Subscription:
        return self.root[index]

    def get_recipients(self, trigger: str, labels: Mapping[str, str] | None = None) -> list[str]:
        """
        Recipients of every subscription matching ``trigger`` and ``labels``.

        Order follows the subscription list and duplicates are preserved.
        """

        result: list[str] = []
        for subscription in self.root:
            if subscription.matches(trigger, labels):
                result.extend(subscription.recipients)
        logger.debug(
            "Trigger %s with labels %s routed to %d recipient(s)", trigger, labels, len(result)
        )
        return result


__all__ = ["Subscription", "SubscriptionTable"]
