"""A per-request database transaction shared through a context variable."""

from __future__ import annotations

import contextvars
import functools
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar

__all__ = [
    "TransactionMissingError",
    "TransactionNoDatabaseError",
    "DatabaseUnavailableError",
    "Transaction",
    "current_transaction",
    "use_transaction",
    "begin_from_context",
    "transactional",
]

F = TypeVar("F", bound=Callable[..., Any])


class TransactionMissingError(LookupError):
    """No transaction is bound to the current context."""

    def __init__(self) -> None:
        super().__init__("Database transaction for request missing in context")


class TransactionNoDatabaseError(RuntimeError):
    """The bound transaction has no database connection."""

    def __init__(self) -> None:
        super().__init__("Transaction in context, but DB is nil")


class DatabaseUnavailableError(ConnectionError):
    """The database connection is gone."""

    def __init__(self, cause: object) -> None:
        super().__init__(f"Database connection not available: {cause}")


def _is_closed_error(exc: BaseException) -> bool:
    text = str(exc).lower()
    return "database is closed" in text or "closed database" in text


class Transaction:
    """Wraps a DB-API connection so that at most one transaction is open at a time."""

    def __init__(self, parent: Any = None) -> None:
        self.parent = parent
        self._current: Any = None
        self._hooks: list[Callable[[], Any]] = []
        self._lock = threading.Lock()

    @property
    def current(self) -> Any:
        """The cursor of the open transaction, or None."""
        return self._current

    def add_after_commit_hook(self, *hooks: Callable[[], Any]) -> None:
        """Register callables run after each successful commit."""
        self._hooks.extend(hooks)

    def copy(self) -> Transaction:
        """Return a fresh transaction on the same connection with the same hooks."""
        other = Transaction(self.parent)
        other._hooks = list(self._hooks)
        return other

    def begin(self, isolation_level: str | None = None) -> Any:
        """Open the transaction unless it is already open; return its cursor."""
        with self._lock:
            if self._current is None:
                cursor = self.parent.cursor()
                if isolation_level is None:
                    cursor.execute("BEGIN")
                else:
                    cursor.execute(
                        f"BEGIN TRANSACTION ISOLATION LEVEL {isolation_level.upper()}"
                    )
                self._current = cursor
            return self._current

    def rollback(self) -> None:
        """Abort the open transaction, if any."""
        with self._lock:
            if self._current is None:
                return
            if self.parent is None:
                self._current = None
                raise DatabaseUnavailableError("no underlying connection")
            try:
                self.parent.rollback()
            except Exception as exc:
                if _is_closed_error(exc):
                    raise DatabaseUnavailableError(exc) from exc
                raise
            finally:
                self._current = None

    def commit(self) -> None:
        """Commit the open transaction, if any, then run the after-commit hooks."""
        with self._lock:
            if self._current is None:
                return
            try:
                self.parent.commit()
            finally:
                self._current = None
            for hook in self._hooks:
                hook()


_current: contextvars.ContextVar[Transaction | None] = contextvars.ContextVar(
    "atlaskit_transaction", default=None
)


def current_transaction() -> Transaction | None:
    """Return the transaction bound to the current context, if any."""
    return _current.get()


@contextmanager
def use_transaction(txn: Transaction) -> Iterator[Transaction]:
    """Bind ``txn`` to the current context for the duration of the block."""
    token = _current.set(txn)
    try:
        yield txn
    finally:
        _current.reset(token)


def begin_from_context(isolation_level: str | None = None) -> Any:
    """Begin the transaction bound to the current context and return its cursor."""
    txn = _current.get()
    if txn is None:
        raise TransactionMissingError()
    if txn.parent is None:
        raise TransactionNoDatabaseError()
    return txn.begin(isolation_level)


def transactional(txn: Any) -> Callable[[F], F]:
    """Run each call of the decorated function with its own transaction.

    ``txn`` is a Transaction used as a template, or a DB-API connection.
    The function opens the transaction itself when it needs one; it is
    rolled back if the function raises and committed otherwise.
    """
    template = txn if isinstance(txn, Transaction) else Transaction(txn)

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            call_txn = template.copy()
            with use_transaction(call_txn):
                try:
                    result = func(*args, **kwargs)
                except BaseException as exc:
                    try:
                        call_txn.rollback()
                    except DatabaseUnavailableError as unavailable:
                        raise unavailable from exc
                    except Exception:
                        pass
                    raise
            try:
                call_txn.commit()
            except Exception as exc:
                raise RuntimeError(f"failed to commit transaction: {exc}") from exc
            return result

        return wrapper  # type: ignore[return-value]

    return decorator