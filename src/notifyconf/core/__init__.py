"""
Core of the notification configuration resolver.

Exposes the configuration tree and its merge rules, the config map and
secret decoders, subscriptions with label selectors, and the resolution
entry points.
"""

from .config import (
    CONFIG_KEY,
    DEFAULT_CONFIG_PATH,
    NOTIFIERS_KEY,
    ConfigService,
    ConfigurationTree,
    DecodedEntries,
    ResolvedConfig,
    decode_config_document,
    decode_config_map,
    load_default_config,
    merge,
    parse_config,
    parse_config_map,
    parse_secret,
)
from .contracts import (
    NotificationTemplate,
    NotificationTrigger,
    NotifierBuilder,
    NotifiersConfig,
    TriggerCompiler,
)
from .errors import (
    CompilationError,
    ConfigDecodeError,
    ConfigError,
    DecodeError,
    InvalidSelectorSyntax,
    MergeError,
    NotifiersDecodeError,
    TemplateDecodeError,
    TriggerDecodeError,
)
from .selectors import LabelSelector, Requirement, parse_selector
from .subscriptions import Subscription, SubscriptionTable

__all__ = [
    "CONFIG_KEY",
    "DEFAULT_CONFIG_PATH",
    "NOTIFIERS_KEY",
    "CompilationError",
    "ConfigDecodeError",
    "ConfigError",
    "ConfigService",
    "ConfigurationTree",
    "DecodeError",
    "DecodedEntries",
    "InvalidSelectorSyntax",
    "LabelSelector",
    "MergeError",
    "NotificationTemplate",
    "NotificationTrigger",
    "NotifierBuilder",
    "NotifiersConfig",
    "NotifiersDecodeError",
    "Requirement",
    "ResolvedConfig",
    "Subscription",
    "SubscriptionTable",
    "TemplateDecodeError",
    "TriggerCompiler",
    "TriggerDecodeError",
    "decode_config_document",
    "decode_config_map",
    "load_default_config",
    "merge",
    "parse_config",
    "parse_config_map",
    "parse_secret",
    "parse_selector",
]
