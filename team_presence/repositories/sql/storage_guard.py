from __future__ import annotations

import functools
import logging
from typing import Any, Awaitable, Callable, TypeVar

from team_presence.db.database import StorageError, StorageUnavailable, UniqueViolation
from team_presence.domain.errors import ErrorKind, Failure, Result

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Result[Any]]])


def storage_guard(entity: str) -> Callable[[F], F]:
    """Turn storage exceptions escaping a repository method into failures.

    Constraint violations a method can explain itself should be caught inside
    it; whatever is left becomes ``CONFLICT``, ``UNAVAILABLE`` or ``INTERNAL``.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Result[Any]:
            try:
                return await func(*args, **kwargs)
            except UniqueViolation as exc:
                logger.info("Unique constraint rejected write", extra={"entity": entity})
                return Failure(ErrorKind.CONFLICT, f"{entity} already exists", cause=str(exc))
            except StorageUnavailable as exc:
                logger.warning(
                    "Storage unavailable", extra={"entity": entity, "operation": func.__name__}
                )
                return Failure(ErrorKind.UNAVAILABLE, "storage unavailable", cause=str(exc))
            except StorageError as exc:
                logger.exception("Unexpected constraint failure", extra={"entity": entity})
                return Failure(ErrorKind.INTERNAL, "internal error", cause=str(exc))
            except Exception as exc:
                logger.exception(
                    "Repository operation failed",
                    extra={"entity": entity, "operation": func.__name__},
                )
                return Failure(ErrorKind.INTERNAL, "internal error", cause=str(exc))

        return wrapper  # type: ignore[return-value]

    return decorator
