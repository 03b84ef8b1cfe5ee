"""
Centralized exception handling for the Tiyende Vendor API.

This module provides:
- Base APIException class extending FastAPI's HTTPException.
- Custom domain-specific exceptions with appropriate status codes and headers.
- Utility functions for formatting DB errors, logging, and routing exceptions.

Usage:
    - Raise specific exceptions in route handlers or in the storage layer.
    - Use `handle()` to normalize raw exceptions (DB, Pydantic) into API-friendly responses.
"""

from traceback import format_exception
from logging import getLogger
from fastapi import status, HTTPException
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import IntegrityError
from psycopg2.errorcodes import UNIQUE_VIOLATION, FOREIGN_KEY_VIOLATION
from pydantic import ValidationError
from sqlalchemy import Column


# ---------------------------------------------------------------------------
# Utility functions
# ---------------------------------------------------------------------------
def formatIntegrityError(e: IntegrityError) -> str:
    """
    Format a database integrity error into a user-friendly message.

    PostgreSQL drivers expose a structured detail message, other backends
    (SQLite) only provide the raw error text.
    """
    diag = getattr(e.orig, "diag", None)
    errorMessage = getattr(diag, "message_detail", None) or str(e.orig)
    errorMessage = errorMessage.translate({ord(i): None for i in '\\"\\.\\(\\)'})
    errorMessage = errorMessage.replace("Key ", "For ")
    errorMessage = errorMessage.replace("=", " value ")
    return errorMessage


def integrityErrorCode(e: IntegrityError) -> str | None:
    """Map an integrity error onto a PostgreSQL SQLSTATE code."""
    code = getattr(e.orig, "pgcode", None)
    if code is not None:
        return code
    message = str(e.orig).upper()
    if "UNIQUE" in message:
        return UNIQUE_VIOLATION
    if "FOREIGN KEY" in message:
        return FOREIGN_KEY_VIOLATION
    return None


def logException(e: Exception) -> None:
    """Log an exception with traceback using Uvicorn's error logger."""
    detail = "".join(format_exception(type(e), e, e.__traceback__))
    logger = getLogger("uvicorn.error")
    logger.error(detail)


# ---------------------------------------------------------------------------
# Base Exception
# ---------------------------------------------------------------------------
class APIException(HTTPException):
    """
    Base class for all application-specific exceptions.

    Provides default handling of status_code, detail, and headers.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    detail = None
    headers = None

    def __init__(self, *args, **kwargs):
        kwargs.setdefault("status_code", self.status_code)
        kwargs.setdefault("detail", self.detail)
        kwargs.setdefault("headers", self.headers)
        super().__init__(*args, **kwargs)


# ---------------------------------------------------------------------------
# Exception handling entrypoint
# ---------------------------------------------------------------------------
def handle(e: Exception):
    """
    Normalize and re-raise exceptions as API-friendly errors.

    Converts raw exceptions from the DB and Pydantic into corresponding
    APIException subclasses. Anything else is logged and re-raised, to be
    answered with a generic 500 response.
    """
    if isinstance(e, IntegrityError):
        code = integrityErrorCode(e)
        if code == UNIQUE_VIOLATION:
            raise UniqueViolation(formatIntegrityError(e))
        if code == FOREIGN_KEY_VIOLATION:
            raise ForeignKeyViolation(formatIntegrityError(e))
    if isinstance(e, ValidationError):
        raise ValidationFailed(detail=jsonable_encoder(e.errors(include_url=False)))
    if isinstance(e, APIException):
        raise e

    logException(e)
    raise e


# ---------------------------------------------------------------------------
# Exception Classes
# ---------------------------------------------------------------------------
class ValidationFailed(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    headers = {"X-Error": "ValidationFailed"}

    def __init__(self, detail):
        super().__init__(detail=detail)


class UniqueViolation(APIException):
    status_code = status.HTTP_409_CONFLICT
    headers = {"X-Error": "UniqueViolation"}

    def __init__(self, detail: str):
        super().__init__(detail=detail)


class ForeignKeyViolation(APIException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    headers = {"X-Error": "ForeignKeyViolation"}

    def __init__(self, detail: str):
        super().__init__(detail=detail)


class Unauthorized(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Unauthorized"
    headers = {"X-Error": "Unauthorized"}


class InvalidCredentials(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid username or password"
    headers = {"X-Error": "InvalidCredentials"}


class DuplicateIdentity(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    headers = {"X-Error": "DuplicateIdentity"}

    def __init__(self, column_name: Column):
        detail = f"The {column_name.name} already exists"
        super().__init__(detail=detail)


class NotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    headers = {"X-Error": "NotFound"}

    def __init__(self, orm_class):
        detail = f"{orm_class.__name__} not found"
        super().__init__(detail=detail)


class InvalidValue(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    headers = {"X-Error": "InvalidValue"}

    def __init__(self, column_name: Column, reason: str | None = None):
        detail = f"Invalid {column_name.name} is provided"
        if reason:
            detail = f"{detail}, {reason}"
        super().__init__(detail=detail)


class InvalidStateTransition(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    headers = {"X-Error": "InvalidStateTransition"}

    def __init__(self, column_name: Column):
        detail = f"The {column_name.name} cannot be set to the provided value"
        super().__init__(detail=detail)


class InsufficientSeats(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Not enough seats available on the trip"
    headers = {"X-Error": "InsufficientSeats"}


class DataInUse(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    headers = {"X-Error": "DataInUse"}

    def __init__(self, orm_class):
        detail = f"The {orm_class.__name__} is currently in use"
        super().__init__(detail=detail)


class InternalError(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Internal server error"
    headers = {"X-Error": "InternalError"}
