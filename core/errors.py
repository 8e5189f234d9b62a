"""
core/errors.py -- Domain exception hierarchy for the agenda service.

Every failure a caller can observe is one of these classes. Each carries the
HTTP status it maps to and a default user-facing message, so components raise
where they detect the problem and api/main.py renders them in one place.

  AgendaError
    ValidationError          400  field-level, user-correctable
    InvalidCredentialsError  400  wrong email or password at login
    DuplicateEmailError      400  business rule: email already registered
    DateConflictError        400  business rule: one event per date
    UnauthenticatedError     401  no or garbled Authorization header
    InvalidTokenError        401  bad signature, expired, or ghost user
    ForbiddenError           403  lacking admin role or event ownership
    NotFoundError            404
    StorageUnavailableError  500  unexpected storage failure (opaque)

Layer rule: core/ is the kernel. No imports from api/, auth/, or events/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("agenda.errors")


class AgendaError(Exception):
    status_code: int = 500
    default_message: str = "Erro interno do servidor."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def detail(self) -> str | list[str]:
        """Value rendered under the "error" key of the response body."""
        return self.message


class ValidationError(AgendaError):
    """One or more field-level problems with a request or draft.

    messages keeps every problem found so the caller can fix them in one go.
    """

    status_code = 400
    default_message = "Dados inválidos."

    def __init__(self, messages: list[str] | str | None = None) -> None:
        if isinstance(messages, str):
            messages = [messages]
        self.messages: list[str] = list(messages or [self.default_message])
        super().__init__(", ".join(self.messages))

    @property
    def detail(self) -> list[str]:
        return self.messages


class InvalidCredentialsError(AgendaError):
    status_code = 400
    default_message = "O email ou senha está incorreto"


class DuplicateEmailError(AgendaError):
    status_code = 400
    default_message = "Usuário já existe."


class DateConflictError(AgendaError):
    status_code = 400
    default_message = "Já existe um evento nessa data."


class UnauthenticatedError(AgendaError):
    status_code = 401
    default_message = "Token não fornecido"


class InvalidTokenError(AgendaError):
    status_code = 401
    default_message = "Token inválido"


class ForbiddenError(AgendaError):
    status_code = 403
    default_message = "Acesso negado: apenas administradores"


class NotFoundError(AgendaError):
    status_code = 404
    default_message = "Evento não encontrado."


class StorageUnavailableError(AgendaError):
    status_code = 500
    default_message = "Erro interno do servidor."


@contextmanager
def storage_errors(message: str) -> Iterator[None]:
    """Translate unexpected SQLAlchemy failures into StorageUnavailableError.

    Wraps the body of one store-backed operation. Domain errors raised inside
    the block pass through untouched; any other SQLAlchemyError is logged with
    its traceback and replaced by an opaque error carrying only `message`.

    Usage:
        with storage_errors("Erro ao criar evento."):
            ...
    """
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Storage failure: %s", message)
        raise StorageUnavailableError(message) from exc
