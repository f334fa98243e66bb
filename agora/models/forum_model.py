from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    JSON,
    func,
)
from sqlalchemy.orm import relationship
from agora.database import Base, table_args, fk
from agora.models.like_model import ForumLike, CommentLike


class Forum(Base):
    __tablename__ = "forums"
    __table_args__ = table_args()

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=False)
    tags = Column(JSON, nullable=False, default=list)

    author_id = Column(
        Integer,
        ForeignKey(fk("users.id"), ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # denormalized; forum_likes rows are the source of truth
    likes = Column(Integer, nullable=False, default=0, server_default="0")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    comments = relationship(
        "Comment",
        back_populates="forum",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    like_memberships = relationship(
        ForumLike,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Comment(Base):
    __tablename__ = "comments"
    __table_args__ = table_args()

    id = Column(Integer, primary_key=True, index=True)

    forum_id = Column(
        Integer,
        ForeignKey(fk("forums.id"), ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_id = Column(
        Integer,
        ForeignKey(fk("users.id"), ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    content = Column(Text, nullable=False)
    likes = Column(Integer, nullable=False, default=0, server_default="0")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    forum = relationship("Forum", back_populates="comments")
    like_memberships = relationship(
        CommentLike,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
