import functools
import logging
from typing import Any, Callable, Optional, Type

from marketplace.core.exceptions import AppException, InternalServerError

logger = logging.getLogger(__name__)


def handle_exceptions(
    default_exception: Type[AppException] = InternalServerError,
    message: Optional[str] = None,
) -> Callable:
    """
    Decorator for async repository methods.

    Application exceptions pass through untouched. Anything else is logged with
    its traceback and re-raised as ``default_exception`` so storage details
    never leak past the repository layer.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except AppException:
                raise
            except Exception as e:
                logger.error(
                    f"Unhandled error in {func.__qualname__}",
                    exc_info=True,
                    extra={"operation": func.__qualname__},
                )
                raise default_exception(detail=message) from e

        return wrapper

    return decorator


def raise_for_status(
    *,
    condition: bool,
    exception: Type[AppException],
    detail: Optional[str] = None,
    **context: Any,
) -> None:
    """Raise ``exception`` when ``condition`` holds."""
    if condition:
        raise exception(detail, **context)
