from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, DateTime, Enum as SqlEnum, ForeignKey, Integer, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fieldsales.db.base import Base


class VisitStatus(str, Enum):
    PLANNED = "PLANNED"
    DONE = "DONE"
    CANCELED = "CANCELED"


visit_branches = Table(
    "visit_branches",
    Base.metadata,
    Column("visit_id", ForeignKey("visits.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "branch_id",
        ForeignKey("client_branches.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Visit(Base):
    __tablename__ = "visits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    commercial_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )
    client_id: Mapped[int] = mapped_column(
        ForeignKey("clients.id"), nullable=False, index=True
    )
    scheduled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    status: Mapped[VisitStatus] = mapped_column(
        SqlEnum(VisitStatus, name="visit_status"),
        nullable=False,
        default=VisitStatus.PLANNED,
        index=True,
    )
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    commercial: Mapped["User"] = relationship()
    client: Mapped["Client"] = relationship()
    branches: Mapped[list["Branch"]] = relationship(secondary=visit_branches)
