from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from datetime import datetime
from typing import Annotated

# Primary keys are INTEGER (int4 on Postgres); larger ids can never match a row.
MAX_ID = 2**31 - 1

RowId = Annotated[int, Field(ge=1, le=MAX_ID)]


# --- User / auth ---

class UserResponse(BaseModel):
    id: int
    email: str
    username: str
    created_at: datetime
    updated_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class RegisterRequest(BaseModel):
    email: EmailStr
    username: str = Field(min_length=3, max_length=30)
    password: str = Field(min_length=6, max_length=72)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        # bcrypt reads at most 72 bytes, and multibyte characters count several.
        if len(value.encode("utf-8")) > 72:
            raise ValueError("password must be at most 72 bytes when UTF-8 encoded")
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class AuthResponse(BaseModel):
    token: str
    user: UserResponse


class SendVerificationCodeRequest(BaseModel):
    email: EmailStr


class VerifyCodeRequest(BaseModel):
    email: EmailStr
    code: str = Field(pattern=r"^\d{6}$")


# --- Category ---

class CategoryBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(CategoryBase):
    pass


class CategoryResponse(CategoryBase):
    id: int
    model_config = ConfigDict(from_attributes=True)


# --- Article ---

class ArticleCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)
    category_ids: list[RowId] = []


class ArticleUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    content: str | None = Field(None, min_length=1)
    category_ids: list[RowId] | None = None  # None keeps, [] clears


class ArticleResponse(BaseModel):
    id: int
    title: str
    content: str
    author_id: int
    author_name: str | None = None
    view_count: int
    categories: list[CategoryResponse] = []
    created_at: datetime
    updated_at: datetime | None = None


class TopArticleResponse(BaseModel):
    id: int
    title: str
    view_count: int


# --- Comment ---

class CommentCreate(BaseModel):
    content: str = Field(min_length=1)


class CommentUpdate(BaseModel):
    content: str = Field(min_length=1)


class CommentResponse(BaseModel):
    id: int
    content: str
    article_id: int
    author_id: int
    author_name: str | None = None
    created_at: datetime
    updated_at: datetime | None = None


# --- Cursor pagination ---

class CursorPage(BaseModel):
    items: list
    next_cursor: int | None = None
    has_more: bool = False


class ArticlePage(CursorPage):
    items: list[ArticleResponse]


class CommentPage(CursorPage):
    items: list[CommentResponse]


# --- Uploads ---

class UploadResponse(BaseModel):
    url: str
    file_name: str
    size: int


# --- Errors / misc ---

class ErrorResponse(BaseModel):
    code: int
    message: str
    detail: str | None = None


class MessageResponse(BaseModel):
    message: str
