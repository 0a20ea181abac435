"""Error taxonomy shared by services and the HTTP layer."""
from __future__ import annotations


class MacrodeskError(Exception):
    """Base class for all handled application errors."""

    status_code = 500


class ClientInputError(MacrodeskError):
    """Malformed or missing input; nothing was written."""

    status_code = 400


class NotFoundError(ClientInputError):
    """A referenced record (e.g. a QA category) does not exist."""


class CollaboratorError(MacrodeskError):
    """An external collaborator (helpdesk, cache, store, model, sheets) failed."""


class FeatureNotConfiguredError(CollaboratorError):
    """Credentials for an optional feature are missing."""

    status_code = 503
