"""
Authorization store: engine, session factory and transactions.

SQLite by default; any SQLAlchemy URL works (e.g. postgresql+psycopg://...).
"""
from __future__ import annotations
import logging
from typing import List, Optional

from sqlalchemy import create_engine, delete, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from authz_bridge.core.exceptions import AuthorizationStoreError
from authz_bridge.core.models import AuthorizationRow
from authz_bridge.db.base import Base
from authz_bridge.db.models import Authorization

logger = logging.getLogger(__name__)


def make_engine(database_url: str, echo: bool = False) -> Engine:
    """Create the engine for database_url.

    In-memory SQLite needs a single shared connection, otherwise every
    session would see its own empty database.
    """
    kwargs = {"echo": echo, "future": True}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    elif database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    return create_engine(database_url, **kwargs)


class AuthorizationTransaction:
    """One unit of work on the authorization table.

    Use as a context manager; the session is always released on exit and
    rolled back if commit() was not reached.

    Usage:
        with store.begin_transaction() as tx:
            tx.delete_authorizations("DEP", "sales")
            tx.create_authorization(row)
            tx.commit()
    """

    def __init__(self, session: Session):
        self._session = session
        self._committed = False
        self._closed = False

    def __enter__(self) -> "AuthorizationTransaction":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def delete_authorizations(self, realm_id: str, group_name: str) -> None:
        """Delete every row owned by (realm_id, group_name)."""
        stmt = delete(Authorization).where(
            Authorization.realm_id == realm_id,
            Authorization.group_name == group_name,
        )
        self._execute("delete_authorizations", stmt)

    def delete_all_authorizations_with_group(self, realm_id: str, group_name: str) -> None:
        """Delete rows owned by the group and rows targeting it."""
        stmt = delete(Authorization).where(
            or_(
                (Authorization.realm_id == realm_id) & (Authorization.group_name == group_name),
                (Authorization.target_realm_id == realm_id) & (Authorization.target_group_name == group_name),
            )
        )
        self._execute("delete_all_authorizations_with_group", stmt)

    def create_authorization(self, row: AuthorizationRow) -> None:
        try:
            self._session.add(Authorization.from_row(row))
            self._session.flush()
        except SQLAlchemyError as e:
            raise AuthorizationStoreError("create_authorization", e) from e

    def commit(self) -> None:
        try:
            self._session.commit()
        except SQLAlchemyError as e:
            raise AuthorizationStoreError("commit", e) from e
        self._committed = True

    def close(self) -> None:
        """Release the session, rolling back uncommitted work."""
        if self._closed:
            return
        self._closed = True
        try:
            if not self._committed:
                self._session.rollback()
        finally:
            self._session.close()

    def _execute(self, operation: str, stmt) -> None:
        try:
            self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise AuthorizationStoreError(operation, e) from e


class AuthorizationStore:
    """Relational persistence of group authorizations."""

    def __init__(self, database_url: Optional[str] = None, engine: Optional[Engine] = None):
        if engine is None:
            if not database_url:
                raise ValueError("database_url or engine is required")
            engine = make_engine(database_url)
        self.engine = engine
        self._session_factory = sessionmaker(
            bind=engine,
            expire_on_commit=False,
            autoflush=False,
        )

    def create_schema(self) -> None:
        """Create missing tables."""
        Base.metadata.create_all(self.engine)
        logger.info(f"[store] Schema ready on {self.engine.url.render_as_string(hide_password=True)}")

    def begin_transaction(self) -> AuthorizationTransaction:
        try:
            session = self._session_factory()
            session.begin()
        except SQLAlchemyError as e:
            raise AuthorizationStoreError("begin_transaction", e) from e
        return AuthorizationTransaction(session)

    def get_authorizations(self, realm_id: str, group_name: str) -> List[AuthorizationRow]:
        """Return rows owned by (realm_id, group_name), ordered for stable output."""
        stmt = (
            select(Authorization)
            .where(Authorization.realm_id == realm_id, Authorization.group_name == group_name)
            .order_by(Authorization.action, Authorization.target_realm_id, Authorization.target_group_name)
        )
        try:
            with self._session_factory() as session:
                return [item.to_row() for item in session.scalars(stmt)]
        except SQLAlchemyError as e:
            raise AuthorizationStoreError("get_authorizations", e) from e
