"""
Exception hierarchy for notification configuration resolution.

Decode failures are always fatal and carry the offending key, name, or
text so callers can report a precise diagnostic.
"""

from __future__ import annotations


class ConfigError(RuntimeError):
    """Raised when notification configuration cannot be loaded or resolved."""


class DecodeError(ConfigError):
    """Raised when an input document or expression is malformed."""


class InvalidSelectorSyntax(DecodeError):
    """Raised when a label selector expression cannot be parsed."""

    def __init__(self, text: str, reason: str) -> None:
        super().__init__(f"Invalid label selector {text!r}: {reason}")
        self.text = text
        self.reason = reason


class TemplateDecodeError(DecodeError):
    """Raised when a `template.<name>` entry does not hold a valid template."""

    def __init__(self, name: str, cause: Exception) -> None:
        super().__init__(f"Failed to unmarshal template {name}: {cause}")
        self.name = name
        self.cause = cause


class TriggerDecodeError(DecodeError):
    """Raised when a `trigger.<name>` entry does not hold a valid trigger."""

    def __init__(self, name: str, cause: Exception) -> None:
        super().__init__(f"Failed to unmarshal trigger {name}: {cause}")
        self.name = name
        self.cause = cause


class ConfigDecodeError(DecodeError):
    """Raised when a whole configuration document (config.yaml, defaults) is invalid."""

    def __init__(self, source: str, cause: Exception) -> None:
        super().__init__(f"Failed to read {source}: {cause}")
        self.source = source
        self.cause = cause


class NotifiersDecodeError(DecodeError):
    """Raised when the notifiers.yaml secret entry is invalid."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(f"Failed to read notifiers.yaml: {cause}")
        self.cause = cause


class MergeError(ConfigError):
    """Raised when two configuration trees cannot be combined into a valid tree."""


class CompilationError(ConfigError):
    """
    Raised by trigger compilers and notifier builders.

    The resolver never wraps collaborator failures; this class only gives
    collaborators a common base to raise from.
    """


__all__ = [
    "CompilationError",
    "ConfigDecodeError",
    "ConfigError",
    "DecodeError",
    "InvalidSelectorSyntax",
    "MergeError",
    "NotifiersDecodeError",
    "TemplateDecodeError",
    "TriggerDecodeError",
]
