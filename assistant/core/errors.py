from __future__ import annotations


class AssistantError(Exception):
    """Base class for errors raised by the chat backend."""


class InvalidInputError(AssistantError, ValueError):
    """A required input is missing or malformed."""


class NotFoundError(AssistantError, LookupError):
    """A chat or message does not exist for the user."""


class GenerationError(AssistantError):
    """The generative model call failed."""


class StorageError(AssistantError, OSError):
    """A user record could not be read or written."""
