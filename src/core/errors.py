"""Error types raised by the core pipeline and its adapters.

None of these are fatal: jobs catch them, log, and wait for the next tick.
"""

from __future__ import annotations


class WazewatchError(Exception):
    """Base class for all wazewatch errors."""


class TransientFetchFailure(WazewatchError):
    """The feed or a push sink was unreachable or answered with a non-200."""


class MalformedPayload(WazewatchError):
    """A feed response did not have the expected shape."""


class MalformedAlert(WazewatchError):
    """A single alert record is missing fields required to process it."""


class InvalidSample(WazewatchError):
    """A user-count sample was negative or not an integer."""


class PersistenceFailure(WazewatchError):
    """Saving or loading the dedup/counter snapshot failed."""
