"""Branch: a department offered under one regulation (e.g. "CSE")."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campusnotes.database import Base
from campusnotes.models.regulation import Regulation


class Branch(Base):
    __tablename__ = "branches"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    code: Mapped[str] = mapped_column(String(30), nullable=False)
    regulation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("regulations.id"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Many-to-one only; loaded explicitly with selectinload() for name lookups
    regulation: Mapped[Regulation] = relationship(lazy="raise")

    def __repr__(self) -> str:
        return f"<Branch(id={self.id}, code='{self.code}')>"
