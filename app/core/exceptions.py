"""
Platform-wide exception hierarchy.

Services raise these types; blueprints register handlers against them once
and get consistent HTTP status codes everywhere.

Blocked transitions and partial cascade failures are NOT exceptions. They are
returned as structured results so the API layer can render blockers and
per-child failures.

Usage:
    from app.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Project", resource_id=project_id)
    raise ValidationError("Validation failed", details={"status": "..."})
"""


class AuthenticationRequiredError(Exception):
    """Raised when the upstream auth layer did not supply caller identity.

    Maps to HTTP 401.
    """

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class NotFoundError(Exception):
    """Raised when a requested resource does not exist within the given scope.

    Security note: Used for BOTH genuinely missing records AND cross-tenant
    access attempts. A 403 would confirm the resource exists; a 404 does not.

    Args:
        resource: Human-readable model/entity name (e.g. "Project").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
        tenant_id: Optional, the scope that was enforced. For debug logging only.
    """

    def __init__(
        self,
        resource: str,
        resource_id: str | None = None,
        tenant_id: str | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.tenant_id = tenant_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if tenant_id is not None:
            msg += f" (tenant={tenant_id})"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when a request is malformed: missing fields, unknown enum values,
    out-of-range numbers.

    Maps to HTTP 400.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
                 Keys are field names; values are error descriptions.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when a write would clash with the current state of a row.

    Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The field whose value clashed.
        value: The conflicting value (truncated in HTTP response; full in logs).
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} conflicts with current state"
        super().__init__(msg)


class ConcurrentStatusChangeError(ConflictError):
    """Raised when a project's status moved underneath a coordinated change
    twice in a row (compare-and-set failed after one re-read and retry).
    """

    def __init__(self, project_id: str, expected_status: str | None = None) -> None:
        super().__init__(resource="Project", field="status", value=expected_status)
        self.project_id = project_id

    def __str__(self) -> str:
        return (
            f"Project id={self.project_id} status changed concurrently "
            f"(expected {self.value!r})"
        )
