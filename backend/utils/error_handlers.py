"""
Error handling decorators and utilities for API endpoints.

This module centralizes the mapping from application exceptions to HTTP
responses so every endpoint reports failures the same way.
"""

import inspect
import logging
from functools import wraps
from typing import Callable

from fastapi import HTTPException

from constants import HTTPStatus
from exceptions import (
    ApplicationError,
    ConfigurationError,
    ConflictError,
    EntryNotFoundError,
    NetworkError,
    OperationCancelled,
    ValidationError,
)

logger = logging.getLogger(__name__)


def to_http_exception(operation_name: str, error: ApplicationError) -> HTTPException:
    """
    Convert an application exception into an HTTPException.

    Args:
        operation_name: Human-readable name of the operation (for logs and messages)
        error: The exception raised by the service layer

    Returns:
        HTTPException with the status code for the error's kind
    """
    if isinstance(error, ValidationError):
        logger.warning(f"{operation_name} - Validation error: {error.message}")
        return HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=error.message)
    if isinstance(error, EntryNotFoundError):
        logger.info(f"{operation_name} - {error.message}")
        return HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=error.message)
    if isinstance(error, ConflictError):
        logger.info(f"{operation_name} - Already in progress: {error.message}")
        return HTTPException(status_code=HTTPStatus.CONFLICT, detail=error.message)
    if isinstance(error, NetworkError):
        logger.warning(f"{operation_name} - Network error: {error.message}")
        return HTTPException(
            status_code=HTTPStatus.BAD_GATEWAY,
            detail={"message": error.message, "status_code": error.status_code}
        )
    if isinstance(error, OperationCancelled):
        logger.info(f"{operation_name} - {error.message}")
        return HTTPException(status_code=HTTPStatus.SERVICE_UNAVAILABLE, detail=error.message)
    if isinstance(error, ConfigurationError):
        logger.error(f"{operation_name} - Configuration error: {error.message}")
        return HTTPException(status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=error.message)

    logger.error(f"{operation_name} - Application error: {error.message}", exc_info=error)
    return HTTPException(
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        detail=f"{operation_name} failed: {error.message}"
    )


def handle_api_errors(operation_name: str):
    """
    Decorator to handle common API errors consistently across endpoints.

    Args:
        operation_name: Human-readable name of the operation (e.g., "Start download")

    Returns:
        Decorated function that handles errors uniformly

    Example:
        @router.post("/downloads")
        @handle_api_errors("Start download")
        async def start_download(...):
            return await service.start(url)
    """
    def decorator(func: Callable):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except ApplicationError as e:
                raise to_http_exception(operation_name, e)
            except HTTPException:
                raise
            except Exception as e:
                logger.error(f"{operation_name} - Unexpected error: {e}", exc_info=True)
                raise HTTPException(
                    status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
                    detail=f"{operation_name} failed. Please check server logs."
                )

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except ApplicationError as e:
                raise to_http_exception(operation_name, e)
            except HTTPException:
                raise
            except Exception as e:
                logger.error(f"{operation_name} - Unexpected error: {e}", exc_info=True)
                raise HTTPException(
                    status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
                    detail=f"{operation_name} failed. Please check server logs."
                )

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
