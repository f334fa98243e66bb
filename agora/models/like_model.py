from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint, func
from agora.database import Base, table_args, fk

# One row per (user, likeable). The unique constraint is what stops two
# concurrent likes from the same user from both landing.

class ForumLike(Base):
    __tablename__ = "forum_likes"
    __table_args__ = table_args(
        UniqueConstraint("user_id", "forum_id", name="uq_forum_like_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey(fk("users.id"), ondelete="CASCADE"), nullable=False, index=True)
    forum_id = Column(Integer, ForeignKey(fk("forums.id"), ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class CommentLike(Base):
    __tablename__ = "comment_likes"
    __table_args__ = table_args(
        UniqueConstraint("user_id", "comment_id", name="uq_comment_like_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey(fk("users.id"), ondelete="CASCADE"), nullable=False, index=True)
    comment_id = Column(Integer, ForeignKey(fk("comments.id"), ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
