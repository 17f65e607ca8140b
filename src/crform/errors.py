"""Exception definitions for crform"""


class CrformException(Exception):
    """Base exception for all crform errors.

    All custom exceptions in crform inherit from this class. Use this as a
    catch-all for crform-specific errors when you don't need to handle
    specific exception types.
    """

    pass


class ConfigException(CrformException):
    """Raised when configuration validation or loading fails.

    Use this exception when:
    - The configuration file cannot be found
    - The TOML syntax is invalid
    - Configuration validation fails (missing required fields, invalid values)
    """

    pass


class SchemaException(CrformException):
    """Raised when a form schema cannot be loaded.

    Use this exception when:
    - The schema file cannot be found or read
    - The schema is not valid JSON
    - A node is malformed (missing name, repeatable non-section, ...)
    - Sibling nodes share the same name
    """

    pass


class PathError(CrformException):
    """Raised when a value cannot be written at a field path."""

    pass


class ReadOnlyFormError(CrformException):
    pass


class FormValidationError(CrformException):
    """Raised when a submission is blocked by field-level errors.

    The ``errors`` attribute maps each failing field path to its message.
    """

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        super().__init__(f"Form has {len(self.errors)} invalid field(s)")


class ApiException(CrformException):
    """Raised when a call to the change-request service fails.

    Use this exception when:
    - The service returns a 5xx status code
    - The connection fails or times out
    - The response body cannot be decoded
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ClientError(ApiException):
    """Raised when HTTP 4XX client errors occur.

    Use this exception when:
    - HTTP requests return 4xx status codes (400-499)
    - The error indicates a client-side problem (authentication, permission,
      invalid request, unknown change request, ...)
    """

    pass


class PermissionDeniedError(CrformException):
    """Raised when the current user may not act on a change request.

    Use this exception when:
    - A review is requested by a user who is not a super manager
    - A review targets a change request that is no longer pending
    - An execution status change is requested by a non gateway editor, or for
      a change request that is not approved
    """

    pass
