from typing import Optional


class ProfeError(Exception):
    """Base class for every error raised by the chat backend"""


class ConfigurationError(ProfeError):
    """A required setting is missing. Only raised at startup."""

    def __init__(self, setting: str, message: Optional[str] = None):
        self.setting = setting
        super().__init__(message or f"Falta {setting} en .env")


class InputValidationError(ProfeError):
    """Client input is missing or empty after normalization"""

    def __init__(self, message: str = "Faltan datos del estudiante."):
        self.message = message
        super().__init__(message)


class GenerationError(ProfeError):
    """The completion service call failed"""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class PersistenceError(ProfeError):
    """The store is unreachable or rejected a read/write"""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)
