"""Custom Exceptions for the SubLingo application."""

class SubLingoError(Exception):
    """Base class for exceptions in this module."""
    pass

class ConfigurationError(SubLingoError):
    """Exception raised for errors in configuration loading."""
    pass

class TranslationError(SubLingoError):
    """Exception raised when the translation provider call fails."""
    pass

class InvalidCredentialError(TranslationError):
    """Exception raised when the provider rejects the API key as invalid."""
    pass

class ProviderAccessError(TranslationError):
    """Exception raised when the requested model is not found or access is unauthorized."""
    pass

class FormattingError(SubLingoError):
    """Exception raised for errors during subtitle conversion or export."""
    pass

class FileSystemError(SubLingoError):
    """Exception raised for file system related errors (permissions, not found etc)."""
    pass
