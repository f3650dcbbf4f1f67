"""Service errors and the JSON body they are reported with."""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import Any


@dataclass
class ErrorOutput:
    """The body of an error response."""

    error: str

    def to_dict(self) -> dict[str, str]:
        return {"error": self.error}


class AppError(Exception):
    """Base of all errors reported to clients; each kind carries its HTTP status."""

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    template: str = "{}"

    def __init__(self, detail: Any = "") -> None:
        self.detail = str(detail)
        super().__init__(self.template.format(self.detail))

    def response(self) -> tuple[HTTPStatus, dict[str, str]]:
        """Return the status and JSON body that report this error."""
        return self.status, ErrorOutput(str(self)).to_dict()


class EmailAlreadyExistsError(AppError):
    status = HTTPStatus.CONFLICT
    template = "Email already exists: {}"


class DatabaseError(AppError):
    status = HTTPStatus.INTERNAL_SERVER_ERROR
    template = "database error: {}"


class PasswordHashError(AppError):
    status = HTTPStatus.UNPROCESSABLE_ENTITY
    template = "password hashing error: {}"


class GeneralError(AppError):
    status = HTTPStatus.INTERNAL_SERVER_ERROR
    template = "general error: {}"


class HeaderError(AppError):
    status = HTTPStatus.BAD_REQUEST
    template = "http header parse error: {}"


class CreateChatError(AppError):
    status = HTTPStatus.BAD_REQUEST
    template = "create chat error: {}"


class NotFoundError(AppError):
    status = HTTPStatus.NOT_FOUND
    template = "Not found: {}"


class StorageError(AppError):
    status = HTTPStatus.INTERNAL_SERVER_ERROR
    template = "io error: {}"


class UnauthorizedError(AppError):
    status = HTTPStatus.UNAUTHORIZED
    template = "Unauthorized: {}"


class UpdateChatError(AppError):
    status = HTTPStatus.BAD_REQUEST
    template = "Update chat error: {}"


class ChatFileError(AppError):
    status = HTTPStatus.BAD_REQUEST
    template = "{}"


class CreateMessageError(AppError):
    status = HTTPStatus.BAD_REQUEST
    template = "create message error: {}"


class TokenRejectedError(AppError):
    status = HTTPStatus.FORBIDDEN
    template = "jwt error: {}"