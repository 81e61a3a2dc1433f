"""
Trellis Exception Hierarchy.

TrellisError (base, Exception)
├── TrellisConfigError(TrellisError, ValueError)           ← invalid param value / config
├── TrellisPreconditionError(TrellisError, ValueError)     ← save root missing before encode
├── TrellisMalformedInputError(TrellisError, ValueError)   ← unrecognized descriptor / metadata shape
├── TrellisWriteError(TrellisError)                        ← backend failed to persist a stage
├── TrellisLoadError(TrellisError)                         ← backend failed to reconstruct a stage
└── TrellisClassResolutionError(TrellisError)              ← recorded class cannot be resolved

The ValueError subclasses keep ``except ValueError`` blocks in calling
pipeline code working.
"""


class TrellisError(Exception):
    """Base exception for all Trellis errors."""


class TrellisConfigError(TrellisError, ValueError):
    """Configuration or parameter value validation error."""


class TrellisPreconditionError(TrellisError, ValueError):
    """A stage was encoded before its save root was configured."""


class TrellisMalformedInputError(TrellisError, ValueError):
    """Descriptor JSON or params metadata document has an unrecognized shape."""


class TrellisWriteError(TrellisError):
    """A serialization backend failed to persist a stage."""


class TrellisLoadError(TrellisError):
    """A serialization backend failed to reconstruct a stage."""


class TrellisClassResolutionError(TrellisError):
    """A recorded stage class could not be imported or exposes no reader."""
