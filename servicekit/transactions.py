"""Rollback-capable scopes around a service's main phase.

The engine only asks a `TransactionManager` for a scope and marks it for
rollback; storage is the manager's business. `SQLAlchemyTransactionManager`
maps one service run onto one SAVEPOINT of an existing session.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import ContextManager, Protocol

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class Transaction:
    def __init__(self) -> None:
        self._rollback = False

    @property
    def rollback_marked(self) -> bool:
        return self._rollback

    def mark_rollback(self) -> None:
        # Sticky: a later non-rollback message cannot clear it.
        self._rollback = True


class TransactionManager(Protocol):
    def begin(self) -> ContextManager[Transaction]:
        ...


class NullTransactionManager:
    """Scope with no backing storage; remembers how each scope ended."""

    def __init__(self) -> None:
        self.outcomes: list[str] = []

    @contextmanager
    def begin(self) -> Iterator[Transaction]:
        tx = Transaction()
        try:
            yield tx
        except BaseException:
            self.outcomes.append("rollback")
            raise
        self.outcomes.append("rollback" if tx.rollback_marked else "commit")


class SQLAlchemyTransactionManager:
    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    @contextmanager
    def begin(self) -> Iterator[Transaction]:
        tx = Transaction()
        nested = self._session.begin_nested()
        try:
            yield tx
        except BaseException:
            if nested.is_active:
                nested.rollback()
            logger.debug("Rolled back savepoint after exception")
            raise
        if tx.rollback_marked:
            nested.rollback()
            logger.debug("Rolled back savepoint")
        else:
            nested.commit()


def validate_transaction_manager(manager: object) -> None:
    begin = getattr(manager, "begin", None)
    if begin is None or not callable(begin):
        raise TypeError(
            f"Transaction manager must provide begin() (type={type(manager).__name__})"
        )
