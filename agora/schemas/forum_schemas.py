from __future__ import annotations

from pydantic import BaseModel, Field
from typing import List, Optional


class AuthorOut(BaseModel):
    id: int
    username: str


class CommentOut(BaseModel):
    id: int
    forum_id: int
    content: str
    author: Optional[AuthorOut] = None
    likes: int = 0
    liked: bool = False
    created_at: str
    updated_at: str


class ForumOut(BaseModel):
    id: int
    title: str
    description: str
    tags: List[str] = []
    author: Optional[AuthorOut] = None
    likes: int = 0
    liked: bool = False
    comment_count: int = 0
    created_at: str
    updated_at: str


class ForumDetailOut(ForumOut):
    comments: List[CommentOut] = []


class CreateForumIn(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    tags: List[str] = Field(default_factory=list)


class UpdateForumIn(BaseModel):
    # All optional so the client can send only what changed
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1)
    tags: Optional[List[str]] = None


class CreateCommentIn(BaseModel):
    content: str = Field(min_length=1)


class UpdateCommentIn(BaseModel):
    content: str = Field(min_length=1)
