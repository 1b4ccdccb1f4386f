"""Error taxonomy for shield action handling.

None of these are fatal to an event: they are caught at the action or lookup
boundary, logged, and replaced with a safe default.
"""

__all__ = [
    "ActionMalformedError",
    "ConfigAbsentError",
    "InvalidURIError",
    "ShieldActionError",
    "StoreUnavailableError",
    "UnknownActionKindError",
]


class ShieldActionError(Exception):
    """Base class for all engine errors."""


class ConfigAbsentError(ShieldActionError):
    """No configuration exists for the token or the pressed button."""


class ActionMalformedError(ShieldActionError):
    """An action entry is missing a required field or has the wrong shape."""


class InvalidURIError(ShieldActionError):
    """A URL template resolved to something that is not a usable URI."""


class StoreUnavailableError(ShieldActionError):
    """The shared store could not be synchronized or read."""


class UnknownActionKindError(ShieldActionError):
    """The action ``type`` is not one this engine knows."""
