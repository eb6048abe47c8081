"""Row security: per-table authorization predicates layered under plain ORM CRUD.

Each mapped table gets a :class:`TablePolicy` with up to five rules:

``select`` / ``update`` / ``delete``
    SQL expressions over the stored row. These are the ``USING`` clauses.
    Reads pick them up through :func:`visible`. Updates and deletes are checked
    against the row as it is stored before the flush.
``insert`` / ``update_check``
    Python callables over the new row state. These are the ``WITH CHECK``
    clauses, evaluated from the ``before_flush`` hook.

A missing rule denies the command. Sessions without a bound identity skip the
whole layer.

Invariants:
    - A rule may compose the filters of *other* tables through
      :func:`visible_ids`, but never its own table. Re-entering a table that is
      already being evaluated raises :class:`CyclicPolicyError`. Every filter
      is built once at registration, so such a policy is refused when it is
      installed and never reaches a query.
    - Denied reads yield no rows. Denied writes raise
      :class:`PolicyViolationError`.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional
from uuid import UUID, uuid4

from sqlalchemy import ColumnElement, Select, and_, event, exists, false, inspect, select
from sqlalchemy.orm import Session

from .errors import CyclicPolicyError, PolicyViolationError
from .identity import auth_uid, current_profile_id, is_privileged

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PolicyContext:
    """Who a predicate is being evaluated for.

    ``session`` is ``None`` while a policy is being test-built at registration;
    SQL-expression rules must not need it.
    """

    profile_id: UUID | None
    auth_uid: str | None
    session: Optional[Session] = None

    @classmethod
    def for_session(cls, session: Session) -> "PolicyContext":
        return cls(profile_id=current_profile_id(session), auth_uid=auth_uid(session), session=session)


RowFilter = Callable[[PolicyContext], ColumnElement[bool]]
RowCheck = Callable[[PolicyContext, Any], bool]


@dataclass(frozen=True, slots=True)
class TablePolicy:
    select: RowFilter | None = None
    insert: RowCheck | None = None
    update: RowFilter | None = None
    update_check: RowCheck | None = None
    delete: RowFilter | None = None


_FILTER_COMMANDS = ("select", "update", "delete")
_evaluating: ContextVar[tuple[str, ...]] = ContextVar("row_security_evaluating", default=())


def _table_name(model: Any) -> str:
    return model.__table__.name


class RowSecurity:
    """Registry of table policies plus the evaluator that applies them."""

    def __init__(self) -> None:
        self._policies: dict[type, TablePolicy] = {}

    def register(self, model: type, policy: TablePolicy) -> None:
        previous = self._policies.get(model)
        self._policies[model] = policy
        try:
            self._build_filters(model)
        except CyclicPolicyError:
            if previous is None:
                self._policies.pop(model, None)
            else:
                self._policies[model] = previous
            raise

    def policy_for(self, model: type) -> TablePolicy | None:
        return self._policies.get(model)

    def registered(self) -> tuple[type, ...]:
        return tuple(self._policies)

    @contextmanager
    def swapped(self, model: type, policy: TablePolicy) -> Iterator[None]:
        """Install ``policy`` for the duration of the block."""

        previous = self._policies.get(model)
        self.register(model, policy)
        try:
            yield
        finally:
            if previous is None:
                self._policies.pop(model, None)
            else:
                self._policies[model] = previous

    def _build_filters(self, model: type) -> None:
        sample = PolicyContext(profile_id=uuid4(), auth_uid="policy-registration")
        for command in _FILTER_COMMANDS:
            self.row_filter(model, sample, command)

    @contextmanager
    def _evaluating(self, model: type) -> Iterator[None]:
        name = _table_name(model)
        chain = _evaluating.get()
        if name in chain:
            raise CyclicPolicyError(chain + (name,))
        token = _evaluating.set(chain + (name,))
        try:
            yield
        finally:
            _evaluating.reset(token)

    def row_filter(self, model: type, ctx: PolicyContext, command: str = "select") -> ColumnElement[bool]:
        policy = self._policies.get(model)
        rule: RowFilter | None = getattr(policy, command) if policy is not None else None
        if rule is None:
            return false()
        with self._evaluating(model):
            return rule(ctx)

    def visible_ids(self, model: type, ctx: PolicyContext, column: Any = None) -> Select:
        target = model.id if column is None else column
        return select(target).where(self.row_filter(model, ctx, "select"))

    def _run_check(self, model: type, rule: RowCheck | None, ctx: PolicyContext, row: Any) -> bool:
        if rule is None:
            return False
        with self._evaluating(model):
            return bool(rule(ctx, row))

    def _stored_row_matches(self, model: type, ctx: PolicyContext, row: Any, command: str) -> bool:
        session = ctx.session
        if session is None:
            return False
        mapper = inspect(model)
        identity = inspect(row).identity
        if identity is None:
            return False
        key_clause = and_(*[column == value for column, value in zip(mapper.primary_key, identity)])
        with session.no_autoflush:
            return bool(session.scalar(select(exists().where(key_clause, self.row_filter(model, ctx, command)))))

    def check_insert(self, ctx: PolicyContext, row: Any) -> None:
        model = type(row)
        policy = self._policies.get(model)
        if not self._run_check(model, policy.insert if policy else None, ctx, row):
            raise PolicyViolationError(_table_name(model), "insert")

    def check_update(self, ctx: PolicyContext, row: Any) -> None:
        model = type(row)
        if not self._stored_row_matches(model, ctx, row, "update"):
            raise PolicyViolationError(_table_name(model), "update", new_row=False)
        policy = self._policies.get(model)
        if policy is None or policy.update_check is None:
            return
        if not self._run_check(model, policy.update_check, ctx, row):
            raise PolicyViolationError(_table_name(model), "update")

    def check_delete(self, ctx: PolicyContext, row: Any) -> None:
        model = type(row)
        if not self._stored_row_matches(model, ctx, row, "delete"):
            raise PolicyViolationError(_table_name(model), "delete", new_row=False)


row_security = RowSecurity()


def visible(session: Session, model: type, *, command: str = "select") -> Select:
    """``SELECT`` over ``model`` restricted to the rows the session's caller may see.

    This is the filtered read path every client-facing query goes through.
    """

    stmt = select(model)
    if is_privileged(session):
        return stmt
    return stmt.where(row_security.row_filter(model, PolicyContext.for_session(session), command))


def visible_ids(model: type, ctx: PolicyContext, column: Any = None) -> Select:
    """Subquery of ``column`` (the primary key by default) over the rows of ``model`` visible under ``ctx``.

    Rules use this to compose another table's read filter into their own.
    """

    return row_security.visible_ids(model, ctx, column)


def unchanged(row: Any, *attributes: str) -> bool:
    state = inspect(row)
    return not any(state.attrs[name].history.has_changes() for name in attributes)


@event.listens_for(Session, "before_flush")
def enforce_row_security(session: Session, _flush_context, _instances) -> None:
    if is_privileged(session):
        return
    ctx = PolicyContext.for_session(session)
    try:
        for row in list(session.new):
            row_security.check_insert(ctx, row)
        for row in list(session.dirty):
            if session.is_modified(row, include_collections=False):
                row_security.check_update(ctx, row)
        for row in list(session.deleted):
            row_security.check_delete(ctx, row)
    except PolicyViolationError as exc:
        logger.info("Write denied for profile %s: %s", ctx.profile_id, exc)
        raise


__all__ = [
    "PolicyContext",
    "RowSecurity",
    "TablePolicy",
    "enforce_row_security",
    "row_security",
    "unchanged",
    "visible",
    "visible_ids",
]
