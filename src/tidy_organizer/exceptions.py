"""Custom exceptions for tidy organizer."""


class TidyOrganizerError(Exception):
    """Base exception for tidy organizer errors."""
    pass


class FileOperationError(TidyOrganizerError):
    """Raised when file operations fail."""
    pass


class ConfigurationError(TidyOrganizerError):
    """Raised when there's an error in configuration."""
    pass
