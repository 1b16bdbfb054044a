"""
Exception Definitions - Custom exceptions for Simple Bot
========================================================

This module defines all custom exceptions used throughout the application,
providing clear error handling and meaningful error messages.
"""


class BotError(Exception):
    """
    Base exception for all Simple Bot errors.

    All custom exceptions in this application inherit from this base class,
    allowing for easy catching of all application-specific errors.

    Attributes:
        message (str): Human-readable error description
        details (dict): Additional error details for debugging
    """

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            details: Optional dictionary with additional error context
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return formatted error message with details if present."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigError(BotError):
    """
    Configuration-related errors.

    Raised when there are issues with:
    - Unreadable settings files
    - Invalid configuration values
    - Unknown settings keys
    - YAML parsing errors
    """
    pass


class DefinitionError(BotError):
    """
    Malformed action definition.

    Raised when a rule:
    - Has both ``contains`` and ``regex``
    - Has no reaction or more than one
    - Has an invalid regex or an unknown chat mode
    - Uses an unknown key

    Attributes:
        index (int): Position of the offending definition, if known
    """

    def __init__(self, message: str, index: int = None, details: dict = None):
        self.index = index
        super().__init__(message, details)

    def __str__(self) -> str:
        base = super().__str__()
        if self.index is not None:
            return f"Action #{self.index + 1}: {base}"
        return base


class DuplicateTriggerError(BotError):
    """Raised when a dynamic action with the same trigger already exists."""
    pass


class NotFoundError(BotError):
    """Raised when no dynamic action has the requested trigger."""
    pass


class ProcessSpawnError(BotError):
    """
    External process errors.

    Carried inside an execution result rather than raised:
    - Program not found
    - Permission denied
    - Timeout (the child was killed)
    """
    pass


class PersistError(BotError):
    """
    Dynamic action file could not be written.

    The in-memory change has already been applied when this is raised,
    so running behavior and the file on disk disagree until the next
    successful save.
    """
    pass


class TransportError(BotError):
    """
    Chat transport errors.

    Raised when a reply cannot be delivered to the chat collaborator.
    """
    pass
