"""
Database Schemas for Campus Social App

Each Pydantic model represents a MongoDB collection. The collection name is the
lowercased class name. Example: class User -> "user" collection.

Attributes are snake_case in Python and stored / served under their camelCase
alias (text_content -> "textContent").
"""

from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MongoModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )


class User(MongoModel):
    first_name: str = Field(..., description="Given name")
    last_name: str = Field(..., description="Family name")
    email: str = Field(..., description="Email address (unique)")
    password_hash: Optional[str] = Field(None, description="sha256 of the password")
    image_url: Optional[str] = Field(None, description="Profile image URL")
    is_admin: bool = Field(False, description="Administrator flag")
    is_work_verified: bool = Field(False, description="Employment has been verified")
    is_recruiter_verified: bool = Field(False, description="Recruiter status has been verified")
    skills: List[str] = Field(default_factory=list, description="Self-declared skills")
    connections: List[str] = Field(default_factory=list, description="IDs of users this user follows")


class Comment(MongoModel):
    user_id: str = Field(..., description="User ID of commenter")
    comment: str = Field(..., description="Comment text")
    created_at: Optional[datetime] = Field(None, description="When the comment was posted")


class Post(MongoModel):
    user_id: ObjectId = Field(..., description="User ID of author")
    text_content: Optional[str] = Field(None, description="Post text content")
    image_content: Optional[str] = Field(None, description="URL of an attached image")
    tags: List[str] = Field(default_factory=list, description="Topic tags")
    likes: List[str] = Field(default_factory=list, description="IDs of users who liked the post")
    comments: List[Comment] = Field(default_factory=list, description="Comments in posting order")
    donatable: bool = Field(False, description="Author accepts donations for this post")
