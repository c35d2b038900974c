from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from theo_notes.db.base_class import Base


class Video(Base):
    __tablename__ = "videos"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # source
    youtube_url: Mapped[str] = mapped_column(Text, nullable=False)
    youtube_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    # display/meta
    title: Mapped[str | None] = mapped_column(String(512), nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    # generated + user content
    blog_content: Mapped[str | None] = mapped_column(Text, nullable=True)  # markdown
    user_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())

    points = relationship(
        "ActionablePoint",
        back_populates="video",
        cascade="all, delete-orphan",
        order_by="ActionablePoint.position",
    )
