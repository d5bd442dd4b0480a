"""Error taxonomy for the acquisition and conjunction pipeline.

Everything except :class:`InvalidRequest` is recovered inside the package:
the layer that catches it logs it and returns the best available data
(cached, synthetic, or an omitted item) instead of failing the caller.
"""

from __future__ import annotations


class OrbtrackError(Exception):
    """Base class for all orbtrack errors."""


class CredentialsMissing(OrbtrackError):
    """Space-Track username or password is not configured.

    Terminal for the process lifetime: upstream acquisition is disabled.
    """


class AuthenticationFailed(OrbtrackError):
    """Login was rejected, or an authenticated request came back 401/403.

    The session is reset; the next caller attempt re-authenticates.
    """


class NetworkOrTimeout(OrbtrackError):
    """A single upstream request failed or exceeded its timeout."""


class MalformedFeedRow(OrbtrackError, ValueError):
    """A conjunction feed row that cannot be turned into an event."""


class PropagationInvalid(OrbtrackError, ValueError):
    """SGP4 reported an error or produced a physically invalid state."""


class InvalidRequest(OrbtrackError, ValueError):
    """Structurally invalid input from an external caller."""
