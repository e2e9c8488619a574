"""
Exception hierarchy for ZenWealth.
Gateway failures are recoverable: callers keep the last known values.
"""


class ZenWealthError(Exception):
    """Base class for all ZenWealth errors."""


class GatewayUnavailable(ZenWealthError):
    """Market data backend failed (network, auth, quota or timeout)."""


class MalformedGatewayResponse(GatewayUnavailable):
    """Market data backend answered with something we could not parse."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class PersistenceCorrupt(ZenWealthError):
    """Stored portfolio snapshot could not be decoded."""


class InvalidAssetDraft(ZenWealthError, ValueError):
    """Asset draft is missing a field required by its type."""
