"""
Error taxonomy for the workbench.

Every failure a user-initiated operation can hit is one of these types.
Adapters translate vendor exceptions into them at their boundary;
controllers turn them into events.
"""

from __future__ import annotations


class WorkbenchError(Exception):
    """Base class for all workbench errors."""

    kind: str = "workbench_error"


class AuthError(WorkbenchError):
    """No current user handle is available."""

    kind = "auth_error"


# -------------------------
# Model
# -------------------------

class ModelRequestError(WorkbenchError):
    """
    Transport failure, non-2xx status or malformed completion response.

    upstream_message carries the provider's human-readable message when
    one was returned.
    """

    kind = "model_request_error"

    def __init__(self, message: str, *, upstream_message: str | None = None) -> None:
        super().__init__(message)
        self.upstream_message = upstream_message


# -------------------------
# Extraction
# -------------------------

class ExtractionError(WorkbenchError):
    """Base class for response extraction failures."""

    kind = "extraction_error"


class StructureError(ExtractionError):
    """A structured object was found but lacks a required field."""

    kind = "structure_error"


class NoStructuredDataError(ExtractionError):
    """No parseable structured object was found in the text."""

    kind = "no_structured_data"


# -------------------------
# Persistence
# -------------------------

class PersistenceError(WorkbenchError):
    """Read or write failure against the configuration store."""

    kind = "persistence_error"


class RecordNotFoundError(PersistenceError):
    """No configuration record exists for the user."""

    kind = "record_not_found"


class InvalidRecordError(PersistenceError):
    """The configuration record exists but a Mode field is malformed."""

    kind = "invalid_record"


# -------------------------
# Call provider
# -------------------------

class ProviderError(WorkbenchError):
    """Session creation, start or stop failed on the call provider."""

    kind = "provider_error"


class AgentApplyError(ProviderError):
    """Pushing a committed prompt to the live agent failed."""

    kind = "agent_apply_error"
