"""
Authorization rows of the back-office.

The table is a materialized view of the last matrix submitted for each
(realm, group name) pair. Rows are keyed by group *name* so they survive
identifier changes internal to Keycloak.
"""
from typing import Optional

from sqlalchemy import Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from authz_bridge.core.models import AuthorizationRow
from authz_bridge.db.base import Base, CreatedAtMixin


class Authorization(Base, CreatedAtMixin):
    __tablename__ = "authorizations"
    __table_args__ = (
        UniqueConstraint(
            "realm_id", "group_name", "action", "target_realm_id", "target_group_name",
            name="uq_authorizations_leaf",
        ),
        Index("ix_authorizations_owner", "realm_id", "group_name"),
        Index("ix_authorizations_target", "target_realm_id", "target_group_name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    realm_id: Mapped[str] = mapped_column(String(255), nullable=False)
    group_name: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(String(255), nullable=False)
    target_realm_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    target_group_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    @classmethod
    def from_row(cls, row: AuthorizationRow) -> "Authorization":
        return cls(
            realm_id=row.realm_id,
            group_name=row.group_name,
            action=row.action,
            target_realm_id=row.target_realm_id,
            target_group_name=row.target_group_name,
        )

    def to_row(self) -> AuthorizationRow:
        return AuthorizationRow(
            realm_id=self.realm_id,
            group_name=self.group_name,
            action=self.action,
            target_realm_id=self.target_realm_id,
            target_group_name=self.target_group_name,
        )

    def __repr__(self) -> str:
        return (
            f"<Authorization {self.realm_id}/{self.group_name} {self.action} "
            f"-> {self.target_realm_id}/{self.target_group_name}>"
        )
