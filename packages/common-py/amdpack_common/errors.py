"""
AMDPack Exception Classes

This module defines the exception hierarchy for all AMDPack packages.
All custom exceptions inherit from AmdPackError to enable consistent error handling.

Usage:
    from amdpack_common.errors import ConfigError, ParseError

    if not patterns:
        raise ConfigError("Combine patterns cannot be empty strings")
"""


class AmdPackError(Exception):
    """
    Base exception for all AMDPack errors.

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
    """

    def __init__(self, message: str, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """
        Serialize error to dictionary for reporting.

        Returns:
            dict with error details including class name, code, and message
        """
        return {
            "error": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code='{self.code}', message='{self.message}')"


class ConfigError(AmdPackError):
    """
    Raised when module configuration is malformed.

    Use this for:
    - Invalid module.conf content
    - Empty or malformed combine patterns
    - Unterminated character classes in glob patterns

    Example:
        if not pattern:
            raise ConfigError("Combine patterns cannot be empty strings")
    """

    def __init__(self, message: str):
        super().__init__(message, code="CONFIG_ERROR")


class ModuleLookupError(AmdPackError, LookupError):
    """
    Raised when a module id has no source bound to it.

    Fatal for the whole bundle call: no partial output is produced.

    Example:
        if module_id not in self._id_to_source:
            raise ModuleLookupError(module_id)
    """

    def __init__(self, module_id: str):
        self.module_id = module_id
        super().__init__(f"Get code failed, moduleId = {module_id}", code="MODULE_NOT_FOUND")


class ParseError(AmdPackError):
    """
    Raised when a module's source cannot be parsed into definitions.

    Fatal for the whole bundle call: no partial output is produced.
    """

    def __init__(self, message: str, module_id: str | None = None):
        self.module_id = module_id
        if module_id:
            message = f"{message}, moduleId = {module_id}"
        super().__init__(message, code="PARSE_ERROR")
