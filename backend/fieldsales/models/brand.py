from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from fieldsales.db.base import Base


class Brand(Base):
    __tablename__ = "brands"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
