"""
Tenant-scoped query helpers.

Every get-by-id in the service MUST use these helpers instead of
Model.query.get(pk) or db.session.get(Model, pk). Direct .get() calls
bypass tenant isolation.

Usage:
    # Scope by tenant_id (every TenantModel subclass)
    project = get_scoped(Project, project_id, tenant_id=tenant_id)

    # Scope by tenant and owning project
    sp = get_scoped(ScheduleProject, sp_id, tenant_id=tenant_id, project_id=project_id)

    # When None is an acceptable outcome
    sp = get_scoped_or_none(ScheduleProject, sp_id, tenant_id=tenant_id)

Scope field resolution:
    Each keyword argument maps directly to a column name on the model.
    If the model does not have that column, a ValueError is raised at
    call time so the bug surfaces immediately during development/testing
    rather than silently allowing unscoped access in production.
"""

import logging

from sqlalchemy import select

from app.core.exceptions import NotFoundError
from app.models import db

logger = logging.getLogger(__name__)


def get_scoped(
    model,
    pk: str,
    *,
    tenant_id: str | None = None,
    project_id: str | None = None,
    session=None,
    for_update: bool = False,
):
    """Fetch a single entity by PK with mandatory scope filter.

    At least one scope parameter MUST be provided and MUST correspond to a
    column that actually exists on the model.

    Cross-tenant access is indistinguishable from a missing record: both
    raise NotFoundError → HTTP 404.

    Args:
        model: SQLAlchemy model class with an ``id`` PK column.
        pk: Primary key value to look up.
        tenant_id: Scope by tenant_id column.
        project_id: Scope by project_id column.
        session: Session to query with. Defaults to ``db.session``.
        for_update: Lock the row (``SELECT ... FOR UPDATE``) where the
            backend supports it.

    Raises:
        ValueError: If no scope parameter is provided, or a provided scope
                    names a column the model does not have.
        NotFoundError: If the entity does not exist OR belongs to a different
                       scope.
    """
    provided_scopes = {
        "tenant_id": tenant_id,
        "project_id": project_id,
    }
    provided_scopes = {k: v for k, v in provided_scopes.items() if v is not None}

    if not provided_scopes:
        raise ValueError(
            f"{model.__name__} id={pk} requires at least one scope filter "
            "(tenant_id or project_id). Unscoped lookups are forbidden."
        )

    missing_fields = sorted(f for f in provided_scopes if not hasattr(model, f))
    if missing_fields:
        raise ValueError(
            f"{model.__name__} id={pk}: scope field(s) {missing_fields} "
            f"are not columns on {model.__name__}. Refusing to perform the lookup."
        )

    stmt = select(model).where(model.id == pk)
    for field, value in provided_scopes.items():
        stmt = stmt.where(getattr(model, field) == value)
    if for_update:
        stmt = stmt.with_for_update()

    result = (session or db.session).execute(stmt).scalar_one_or_none()

    if result is None:
        logger.debug(
            "get_scoped: %s id=%s not found in scope %s",
            model.__name__,
            pk,
            provided_scopes,
        )
        raise NotFoundError(resource=model.__name__, resource_id=pk)

    return result


def get_scoped_or_none(
    model,
    pk: str,
    *,
    tenant_id: str | None = None,
    project_id: str | None = None,
    session=None,
):
    """Same as get_scoped but returns None instead of raising NotFoundError.

    Still enforces the scope parameter requirement.
    """
    try:
        return get_scoped(
            model,
            pk,
            tenant_id=tenant_id,
            project_id=project_id,
            session=session,
        )
    except NotFoundError:
        return None
