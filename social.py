"""
Feed queries and post/connection mutations.

Every mutation is a single update document sent to MongoDB, so concurrent
requests touching the same post or user cannot overwrite each other's changes.
"""

from typing import List, Optional

from pymongo import ASCENDING, DESCENDING

from config import settings
from database import create_document, get_collection, store_call, to_object_id, to_public, utcnow
from errors import InternalError, NotFoundError, ValidationError
from log import logger
from schemas import Comment, Post

POST_NOT_FOUND = "Post not found"
USER_NOT_FOUND = "User not found"

POST_FIELDS = (
    "userId",
    "textContent",
    "imageContent",
    "likes",
    "tags",
    "comments",
    "donatable",
    "createdAt",
    "updatedAt",
)
AUTHOR_FIELDS = ("_id", "firstName", "lastName", "email", "imageUrl")


def split_tags(tags) -> List[str]:
    """Turn "a, b,c" (or a list) into ["a", "b", "c"], dropping empty items."""
    if isinstance(tags, str):
        tags = tags.split(",")
    return [tag.strip() for tag in tags if tag and tag.strip()]


def _post_id(post_id: str):
    oid = to_object_id(post_id)
    if oid is None:
        raise NotFoundError(POST_NOT_FOUND)
    return oid


def _user_id(user_id: str):
    oid = to_object_id(user_id)
    if oid is None:
        raise NotFoundError(USER_NOT_FOUND)
    return oid


# ----------------- Feed -----------------

def get_feed(start: int = 0, limit: int = 0, order: str = "desc") -> dict:
    """
    One page of the global feed, newest first unless order == "asc".

    Each post carries a `user` summary of its author. `total` counts the whole
    collection, not just the page.
    """
    limit = limit or settings.FEED_DEFAULT_LIMIT
    skip = start * limit
    direction = ASCENDING if order == "asc" else DESCENDING

    projection = {field: 1 for field in POST_FIELDS}
    projection.update({f"user.{field}": 1 for field in AUTHOR_FIELDS})

    pipeline = [
        {"$sort": {"createdAt": direction, "_id": direction}},
        {"$skip": skip},
        {"$limit": limit},
        {
            "$lookup": {
                "from": "user",
                "localField": "userId",
                "foreignField": "_id",
                "as": "user",
            }
        },
        {"$unwind": {"path": "$user", "preserveNullAndEmptyArrays": True}},
        {"$project": projection},
    ]

    posts = get_collection("post")
    with store_call("Failed to load posts"):
        data = list(posts.aggregate(pipeline))
        total = posts.count_documents({})

    return {
        "data": [to_public(p) for p in data],
        "total": total,
        "hasNextPage": total > skip + limit,
    }


def explore(tag: Optional[str] = None) -> List[dict]:
    """The most recent posts, optionally only those tagged with `tag`."""
    query = {"tags": tag} if tag else {}
    with store_call("Failed to load posts"):
        cursor = (
            get_collection("post")
            .find(query)
            .sort("createdAt", DESCENDING)
            .limit(settings.EXPLORE_LIMIT)
        )
        return [to_public(p) for p in cursor]


# ----------------- Posts -----------------

def create_post(
    user_id: str,
    tags: List[str],
    text_content: Optional[str] = None,
    image_content: Optional[str] = None,
    donatable: bool = False,
) -> dict:
    author_id = to_object_id(user_id)
    if author_id is None:
        raise ValidationError("Invalid user id")

    post = Post(
        user_id=author_id,
        text_content=text_content,
        image_content=image_content,
        tags=tags,
        donatable=donatable,
    )
    with store_call("Failed posting content"):
        post_id = create_document("post", post)
        created = get_collection("post").find_one({"_id": to_object_id(post_id)})
    if not created:
        raise InternalError("Failed posting content")

    logger.bind(user_id=user_id, post_id=post_id).info("Post created")
    return to_public(created)


def toggle_like(post_id: str, user_id: str) -> bool:
    """
    Like the post for user_id, or remove the like when it is already there.

    Returns True when the post is now liked by the user.
    """
    oid = _post_id(post_id)
    posts = get_collection("post")

    with store_call("Failed to like post"):
        result = posts.update_one(
            {"_id": oid, "likes": user_id},
            {"$pull": {"likes": user_id}, "$set": {"updatedAt": utcnow()}},
        )
        if result.matched_count:
            liked = False
        else:
            result = posts.update_one(
                {"_id": oid, "likes": {"$ne": user_id}},
                {"$addToSet": {"likes": user_id}, "$set": {"updatedAt": utcnow()}},
            )
            if not result.matched_count:
                if posts.find_one({"_id": oid}, {"_id": 1}) is None:
                    raise NotFoundError(POST_NOT_FOUND)
                # a concurrent like from the same user landed between the two updates
                raise InternalError("Failed to like post")
            liked = True

    logger.bind(user_id=user_id, post_id=post_id).info("Post {}", "liked" if liked else "unliked")
    return liked


def add_comment(post_id: str, user_id: str, text: str) -> None:
    oid = _post_id(post_id)
    entry = Comment(user_id=user_id, comment=text, created_at=utcnow()).model_dump(by_alias=True)

    with store_call("Failed to comment on post"):
        result = get_collection("post").update_one(
            {"_id": oid},
            {"$push": {"comments": entry}, "$set": {"updatedAt": utcnow()}},
        )
    if not result.matched_count:
        raise NotFoundError(POST_NOT_FOUND)

    logger.bind(user_id=user_id, post_id=post_id).info("Comment added")


def edit_post(
    post_id: str,
    tags: List[str],
    text_content: Optional[str] = None,
    image_content: Optional[str] = None,
) -> None:
    oid = _post_id(post_id)

    with store_call("Failed to edit post"):
        result = get_collection("post").update_one(
            {"_id": oid},
            {
                "$set": {
                    "textContent": text_content,
                    "imageContent": image_content,
                    "tags": tags,
                    "updatedAt": utcnow(),
                }
            },
        )
    if not result.matched_count:
        raise NotFoundError(POST_NOT_FOUND)

    logger.bind(post_id=post_id).info("Post edited")


# ----------------- Connections -----------------

def get_connections(user_id: str) -> List[str]:
    oid = _user_id(user_id)
    with store_call("Failed to load connections"):
        user = get_collection("user").find_one({"_id": oid}, {"connections": 1})
    if user is None:
        raise NotFoundError(USER_NOT_FOUND)
    return user.get("connections", [])


def add_connection(user_id: str, other_user_id: str) -> None:
    oid = _user_id(user_id)
    with store_call("Failed to add connection to the user's database entry"):
        result = get_collection("user").update_one(
            {"_id": oid},
            {"$addToSet": {"connections": other_user_id}, "$set": {"updatedAt": utcnow()}},
        )
    if not result.matched_count:
        raise NotFoundError(USER_NOT_FOUND)

    logger.bind(user_id=user_id, other_user_id=other_user_id).info("Connection added")


def remove_connection(user_id: str, other_user_id: str) -> None:
    oid = _user_id(user_id)
    with store_call("Failed to remove connection from the user's database entry"):
        result = get_collection("user").update_one(
            {"_id": oid},
            {"$pull": {"connections": other_user_id}, "$set": {"updatedAt": utcnow()}},
        )
    if not result.matched_count:
        raise NotFoundError(USER_NOT_FOUND)

    logger.bind(user_id=user_id, other_user_id=other_user_id).info("Connection removed")
