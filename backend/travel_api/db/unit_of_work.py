from __future__ import annotations

from typing import Iterator

from fastapi import Depends
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..observability.logging import get_logger
from ..repositories.bookings_repo import BookingRepository
from ..repositories.chat_repo import ChatMessageRepository
from ..repositories.password_reset_repo import PasswordResetOtpRepository
from ..repositories.refresh_tokens_repo import RefreshTokenRepository
from ..repositories.services_repo import ServiceRepository
from ..repositories.users_repo import UserRepository
from .errors import translate_db_error
from .session import get_db_engine, session_factory_for

log = get_logger("unit_of_work")


class UnitOfWork:
    """
    Repositories sharing one session and one transaction.

    Used as a context manager; leaving the block without `commit()` rolls back.
    """

    session: Session
    users: UserRepository
    services: ServiceRepository
    bookings: BookingRepository
    chat_messages: ChatMessageRepository
    password_reset_otps: PasswordResetOtpRepository
    refresh_tokens: RefreshTokenRepository

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def __enter__(self) -> "UnitOfWork":
        self.session = self._session_factory()
        self.users = UserRepository(self.session)
        self.services = ServiceRepository(self.session)
        self.bookings = BookingRepository(self.session)
        self.chat_messages = ChatMessageRepository(self.session)
        self.password_reset_otps = PasswordResetOtpRepository(self.session)
        self.refresh_tokens = RefreshTokenRepository(self.session)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is not None or self.session.in_transaction():
                self.session.rollback()
        finally:
            self.session.close()

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            log.warning("db_commit_failed", error_type=type(e).__name__)
            raise translate_db_error(e, operation="commit") from e

    def rollback(self) -> None:
        self.session.rollback()

    def refresh(self, entity: object) -> None:
        self.session.refresh(entity)

    def can_connect(self) -> bool:
        try:
            self.session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            self.session.rollback()
            return False


def get_unit_of_work(engine: Engine = Depends(get_db_engine)) -> Iterator[UnitOfWork]:
    """FastAPI dependency: one UnitOfWork per request."""
    with UnitOfWork(session_factory_for(engine)) as uow:
        yield uow
