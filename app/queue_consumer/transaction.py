"""Transactional execution context protocol."""

from typing import ContextManager, Protocol


class TransactionManager(Protocol):
    """Runs a unit of work atomically.

    transaction() returns a context manager that commits on normal exit and
    rolls back on exception, re-raising it. A failing commit must raise from
    __exit__ so the consumer can treat it as a failed attempt.

    Example:
        class SQLAlchemyTransactionManager:
            def __init__(self, session_factory):
                self.session_factory = session_factory

            def transaction(self):
                return self.session_factory.begin()
    """

    def transaction(self) -> ContextManager[None]:
        ...
