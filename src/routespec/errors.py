"""Exception hierarchy for routespec.

Binding errors are raised per request and map to 4xx responses.
Configuration errors are raised while routes are being registered and are
meant to abort application startup.
"""

from typing import Any


class RoutespecError(Exception):
    """Base exception for routespec."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Return the error as the body of an error response."""
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"error": error}


# --- request time -----------------------------------------------------------


class BindingError(RoutespecError):
    """Raised when raw request data cannot be turned into a shape instance."""

    def __init__(self, code: str, message: str, field: str | None = None):
        super().__init__(
            code=code,
            message=message,
            status_code=400,
            details={"field": field} if field else None,
        )
        self.field = field


class RequiredFieldMissing(BindingError):
    """Raised when a non-nullable field without default received no value."""

    def __init__(self, field: str):
        super().__init__(
            code="REQUIRED_FIELD_MISSING",
            message=f"The field {field} is required",
            field=field,
        )


class ValidationFailure(BindingError):
    """Raised when a value is present but fails parsing or a constraint."""

    def __init__(self, field: str | None, message: str):
        super().__init__(code="VALIDATION_FAILED", message=message, field=field)


class RouteNotFound(RoutespecError):
    """Raised by the dispatcher when no route matches the path."""

    def __init__(self, path: str):
        super().__init__(
            code="NOT_FOUND",
            message=f"No route matches {path}",
            status_code=404,
            details={"path": path},
        )


class MethodNotAllowed(RoutespecError):
    """Raised by the dispatcher when the path matches but the method does not."""

    def __init__(self, method: str, path: str, allowed: list[str]):
        super().__init__(
            code="METHOD_NOT_ALLOWED",
            message=f"{method} is not allowed on {path}",
            status_code=405,
            details={"allowed": allowed},
        )


# --- registration time ------------------------------------------------------


class ConfigurationError(RoutespecError):
    """Raised while registering routes; the application must not start."""

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None):
        super().__init__(code=code, message=message, status_code=500, details=details)


class SchemaRegistrationConflict(ConfigurationError):
    """Raised when two distinct types resolve to the same schema name."""

    def __init__(self, name: str, existing: type, incoming: type):
        super().__init__(
            code="SCHEMA_CONFLICT",
            message=(
                f"Schema name {name!r} is already registered for "
                f"{existing.__module__}.{existing.__qualname__}, cannot register "
                f"{incoming.__module__}.{incoming.__qualname__}"
            ),
            details={"name": name},
        )
        self.name = name


class UnannotatedParameterError(ConfigurationError):
    """Raised when a parameter shape has a field without a location annotation."""

    def __init__(self, shape: type, field: str):
        super().__init__(
            code="UNANNOTATED_PARAMETER",
            message=(
                f"Field {field!r} of {shape.__qualname__} must be annotated with "
                "one of PathParam, QueryParam, HeaderParam"
            ),
            details={"shape": shape.__qualname__, "field": field},
        )


class UnsupportedTypeError(ConfigurationError):
    """Raised when a type hint cannot be modeled or bound."""

    def __init__(self, message: str):
        super().__init__(code="UNSUPPORTED_TYPE", message=message)


class InvalidConstraintError(ConfigurationError):
    """Raised when a constraint annotation targets an incompatible type."""

    def __init__(self, message: str):
        super().__init__(code="INVALID_CONSTRAINT", message=message)


class PathParameterMismatch(ConfigurationError):
    """Raised when a path template and the path parameters of a shape disagree."""

    def __init__(self, path: str, missing: list[str], unused: list[str]):
        parts = []
        if missing:
            parts.append(f"no PathParam field for {missing}")
        if unused:
            parts.append(f"PathParam fields {unused} not in template")
        super().__init__(
            code="PATH_PARAMETER_MISMATCH",
            message=f"Path {path}: " + "; ".join(parts),
            details={"path": path, "missing": missing, "unused": unused},
        )


class DuplicateRouteError(ConfigurationError):
    """Raised when the same method is registered twice on the same path."""

    def __init__(self, method: str, path: str):
        super().__init__(
            code="DUPLICATE_ROUTE",
            message=f"{method.upper()} {path} is already registered",
            details={"method": method.upper(), "path": path},
        )


class RegistrationClosedError(ConfigurationError):
    """Raised when routes or schemas are registered after the document was built."""

    def __init__(self, what: str):
        super().__init__(
            code="REGISTRATION_CLOSED",
            message=f"Cannot register {what}: the OpenAPI document is already finalized",
        )
