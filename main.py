import hashlib
import os
import time
import uuid
from contextlib import asynccontextmanager
from typing import List, Literal, Optional, Union

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field, field_validator
from pymongo.errors import DuplicateKeyError

import database
import social
from config import settings
from database import (
    create_document,
    ensure_indexes,
    get_collection,
    get_documents,
    store_call,
    to_object_id,
    to_public,
    utcnow,
)
from errors import ForbiddenError, NoContentError, NotFoundError, register_error_handlers
from log import logger, request_id_var
from schemas import User


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the unique email index on startup."""
    ensure_indexes()
    yield


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Make uploads folder static
os.makedirs(settings.UPLOADS_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOADS_DIR), name="uploads")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    token = request_id_var.set(request.headers.get("X-Request-Id") or uuid.uuid4().hex)
    started = time.perf_counter()
    try:
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "{} {} {} {:.1f}ms",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response
    finally:
        request_id_var.reset(token)


@app.get("/")
def read_root():
    return {"message": f"{settings.APP_NAME} is running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": None,
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }
    db = database.db
    if db is not None:
        response["database"] = "✅ Available"
        response["connection_status"] = "Connected"
        try:
            collections = db.list_collection_names()
            response["collections"] = collections[:10]
            response["database"] = "✅ Connected & Working"
        except Exception as e:
            logger.warning("Database diagnostics failed: {}", e)
            response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"

    response["database_url"] = "✅ Set" if settings.DATABASE_URL else "❌ Not Set"
    response["database_name"] = "✅ Set" if settings.DATABASE_NAME else "❌ Not Set"
    return response

# --------- Caller identity (header-based) ---------
class AuthInfo(BaseModel):
    user_id: Optional[str] = None
    role: str = "user"


def get_auth(x_user_id: Optional[str] = Header(None)) -> AuthInfo:
    return AuthInfo(user_id=x_user_id)


def acting_user(user_id: str, auth: AuthInfo = Depends(get_auth)) -> AuthInfo:
    """The caller named in the path; an X-User-Id header, when sent, must agree."""
    if auth.user_id and auth.user_id != user_id:
        raise ForbiddenError("User ID mismatch")
    return AuthInfo(user_id=user_id, role=auth.role)

# ----------------- Request bodies -----------------
class TaggedContent(BaseModel):
    textContent: Optional[str] = None
    imageContent: Optional[str] = None
    tags: Union[str, List[str]]

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v) -> List[str]:
        tags = social.split_tags(v)
        if not tags:
            raise ValueError("At least one tag is required")
        return tags


class PostContentRequest(TaggedContent):
    donatable: bool = False


class CommentRequest(BaseModel):
    comment: str = Field(..., min_length=1)


class ConnectionRequest(BaseModel):
    otherUserId: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    firstName: str = Field(..., min_length=1)
    lastName: str = Field(..., min_length=1)
    email: str
    password: str = Field(..., min_length=1)
    imageUrl: Optional[str] = None
    skills: List[str] = Field(default_factory=list)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("Invalid email format")
        return v.strip().lower()


class LoginRequest(BaseModel):
    email: str
    password: str


class ProfileUpdateRequest(BaseModel):
    firstName: Optional[str] = Field(None, min_length=1)
    lastName: Optional[str] = Field(None, min_length=1)
    imageUrl: Optional[str] = None
    skills: Optional[List[str]] = None


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode()).hexdigest()

# ----------------- Users -----------------
@app.post("/api/v1/users/register")
def register(req: RegisterRequest):
    with store_call("Failed to register user"):
        existing = get_documents("user", {"email": req.email}, 1)
        if existing:
            raise HTTPException(status_code=400, detail="Email already registered")
        user = User(
            first_name=req.firstName,
            last_name=req.lastName,
            email=req.email,
            password_hash=hash_password(req.password),
            image_url=req.imageUrl,
            skills=req.skills,
        )
        try:
            uid = create_document("user", user)
        except DuplicateKeyError:
            raise HTTPException(status_code=400, detail="Email already registered")
        created = get_documents("user", {"_id": to_object_id(uid)}, 1)
    logger.bind(user_id=uid).info("User registered")
    return to_public(created[0])


@app.post("/api/v1/users/login")
def login(req: LoginRequest):
    with store_call("Failed to log in"):
        users = get_documents("user", {"email": req.email.strip().lower()}, 1)
    if not users:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    u = users[0]
    if u.get("passwordHash") != hash_password(req.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return to_public(u)


@app.get("/api/v1/users")
def list_users(limit: int = Query(50, ge=1, le=200)):
    with store_call("Failed to load users"):
        users = get_documents("user", {}, limit)
    return [to_public(u) for u in users]


@app.get("/api/v1/users/{user_id}")
def get_user(user_id: str):
    oid = to_object_id(user_id)
    with store_call("Failed to load user"):
        user = get_collection("user").find_one({"_id": oid}) if oid else None
    if user is None:
        raise HTTPException(status_code=404, detail=social.USER_NOT_FOUND)
    return to_public(user)


@app.put("/api/v1/users/{user_id}")
def update_profile(req: ProfileUpdateRequest, auth: AuthInfo = Depends(acting_user)):
    oid = to_object_id(auth.user_id)
    if oid is None:
        raise NotFoundError(social.USER_NOT_FOUND)
    changes = req.model_dump(exclude_unset=True)
    changes["updatedAt"] = utcnow()
    with store_call("Failed to update user profile"):
        users = get_collection("user")
        result = users.update_one({"_id": oid}, {"$set": changes})
        if not result.matched_count:
            raise NotFoundError(social.USER_NOT_FOUND)
        updated = users.find_one({"_id": oid})
    logger.bind(user_id=auth.user_id).info("Profile updated")
    return {"message": "Profile updated", "user": to_public(updated)}

# ----------------- Feed -----------------
@app.get("/api/v1/social")
def get_posts(
    start: int = Query(0, ge=0),
    limit: int = Query(0, ge=0, le=settings.FEED_MAX_LIMIT),
    order: Literal["asc", "desc"] = "desc",
):
    limit = limit or settings.FEED_DEFAULT_LIMIT
    page = social.get_feed(start=start, limit=limit, order=order)
    return {
        "data": page["data"],
        "filters": {"start": start, "limit": limit, "order": order},
        "hasNextPage": page["hasNextPage"],
        "total": page["total"],
    }

# ----------------- Connections -----------------
@app.get("/api/v1/social/connections/{user_id}")
def get_user_connections(user_id: str):
    return {"connections": social.get_connections(user_id)}


@app.put("/api/v1/social/connections/{user_id}/addConnection")
def add_user_connection(req: ConnectionRequest, auth: AuthInfo = Depends(acting_user)):
    social.add_connection(auth.user_id, req.otherUserId)
    return {"message": "User added to your connections list"}


@app.put("/api/v1/social/connections/{user_id}/removeConnection")
def remove_user_connection(req: ConnectionRequest, auth: AuthInfo = Depends(acting_user)):
    social.remove_connection(auth.user_id, req.otherUserId)
    return {"message": "User removed from your connections list"}

# ----------------- Explore -----------------
@app.api_route("/api/v1/social/explore", methods=["GET", "PUT"])
@app.api_route("/api/v1/social/explore/{post_tag}", methods=["GET", "PUT"])
def explore_posts(post_tag: Optional[str] = None):
    posts = social.explore(post_tag)
    if not posts:
        if post_tag:
            raise NotFoundError("Tag not found")
        raise NoContentError("No Content Available")
    return {"posts": posts}

# ----------------- Posts -----------------
@app.post("/api/v1/social/{user_id}")
def post_content(req: PostContentRequest, auth: AuthInfo = Depends(acting_user)):
    post = social.create_post(
        auth.user_id,
        tags=req.tags,
        text_content=req.textContent,
        image_content=req.imageContent,
        donatable=req.donatable,
    )
    return {"message": "Content Posted", "post": post}


@app.put("/api/v1/social/{user_id}/{post_id}/like")
def like_post(post_id: str, auth: AuthInfo = Depends(acting_user)):
    liked = social.toggle_like(post_id, auth.user_id)
    return {"message": "Post Liked" if liked else "Post Unliked"}


@app.put("/api/v1/social/{user_id}/{post_id}/comment")
def comment_post(post_id: str, req: CommentRequest, auth: AuthInfo = Depends(acting_user)):
    social.add_comment(post_id, auth.user_id, req.comment)
    return {"message": "Commented on post"}


@app.put("/api/v1/social/{user_id}/{post_id}/edit")
def edit_post(post_id: str, req: TaggedContent, auth: AuthInfo = Depends(acting_user)):
    social.edit_post(
        post_id,
        tags=req.tags,
        text_content=req.textContent,
        image_content=req.imageContent,
    )
    return {"message": "Post edited"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
