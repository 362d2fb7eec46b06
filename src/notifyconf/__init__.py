"""
notifyconf - notification configuration resolver

Builds the effective triggers, templates, subscriptions, and notifier
settings of a cluster notification controller from built-in defaults and
an operator supplied config map and secret.
"""

__version__ = "0.1.0"

from notifyconf.core import (
    ConfigService,
    ConfigurationTree,
    ResolvedConfig,
    Subscription,
    SubscriptionTable,
    load_default_config,
    merge,
    parse_config,
)

__all__ = [
    "ConfigService",
    "ConfigurationTree",
    "ResolvedConfig",
    "Subscription",
    "SubscriptionTable",
    "load_default_config",
    "merge",
    "parse_config",
]
