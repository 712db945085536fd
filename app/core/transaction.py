"""Per-call unit of work.

A `RequestTx` wraps one database transaction. It is entered once per public
operation and rolls back on every exit path unless `commit()` was reached.
Storage errors are classified here, and only here, by `guard()`.
"""

import re
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, NoResultFound, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import TextClause

from app.core.auth import Principal
from app.core.context import RequestContext
from app.core.errors import (
    ERR_DB,
    DeadlineExceededError,
    InternalError,
    NotFoundError,
    ShopError,
)
from app.core.logging import FieldsAdapter

QUERY_CANCELED = "57014"  # SQLSTATE raised when statement_timeout fires

_PLACEHOLDER = re.compile(r"\$(\d+)")


def bind_positional(sql: str, args: Sequence[Any]) -> tuple[TextClause, dict[str, Any]]:
    """Turns `$n` placeholders into named binds SQLAlchemy can execute."""
    params = {f"p{i}": arg for i, arg in enumerate(args, start=1)}
    return text(_PLACEHOLDER.sub(r":p\1", sql)), params


class RequestTx:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        ctx: RequestContext,
        log: FieldsAdapter,
        read_only: bool = False,
        principal: Optional[Principal] = None,
    ):
        self._session_factory = session_factory
        self.ctx = ctx
        self.log = log
        self.read_only = read_only
        self.principal = principal
        self.session: Optional[Session] = None
        self.committed = False

    def __enter__(self) -> "RequestTx":
        self.ctx.check()
        self.session = self._session_factory()
        try:
            self.session.begin()
            if self.read_only:
                self.session.execute(text("SET TRANSACTION READ ONLY"))
            remaining = self.ctx.remaining()
            if remaining is not None:
                self.session.execute(
                    text("select set_config('statement_timeout', :ms, true)"),
                    {"ms": str(max(int(remaining * 1000), 1))},
                )
        except SQLAlchemyError as exc:
            self.log.exception("Begin transaction")
            self.session.close()
            raise InternalError(ERR_DB) from exc
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if not self.committed:
                self.session.rollback()
                self.log.debug("Transaction rolled back")
        except SQLAlchemyError:
            self.log.exception("Rollback")
        finally:
            self.session.close()
        return False

    def commit(self) -> None:
        with self.guard("Commit"):
            self.session.commit()
        self.committed = True

    @contextmanager
    def guard(self, action: str, not_found: Optional[str] = None, **fields: Any) -> Iterator[FieldsAdapter]:
        """Runs a storage step, classifying any driver error exactly once.

        A "no rows" error becomes NotFoundError when `not_found` is given and
        InternalError otherwise. Shop errors raised inside pass through.
        """
        self.ctx.check()
        log = self.log.with_fields(**fields) if fields else self.log
        try:
            yield log
        except ShopError:
            raise
        except NoResultFound as exc:
            if not_found is None:
                log.error("%s: %s", action, exc)
                raise InternalError(ERR_DB) from exc
            log.warning("%s: %s", action, exc)
            raise NotFoundError(not_found) from exc
        except DBAPIError as exc:
            if getattr(exc.orig, "pgcode", None) == QUERY_CANCELED:
                log.warning("%s: statement timeout", action)
                raise DeadlineExceededError("Request deadline exceeded") from exc
            log.exception(action)
            raise InternalError(ERR_DB) from exc
        except SQLAlchemyError as exc:
            log.exception(action)
            raise InternalError(ERR_DB) from exc
        else:
            log.debug(action)

    def execute_positional(self, sql: str, args: Sequence[Any]):
        clause, params = bind_positional(sql, args)
        return self.session.execute(clause, params)
