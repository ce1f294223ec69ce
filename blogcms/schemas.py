import uuid
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

ArticleStatus = Literal["draft", "published"]

Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
Username = Annotated[
    str, StringConstraints(strip_whitespace=True, to_lower=True, min_length=3, max_length=30)
]
# bcrypt only looks at the first 72 bytes
Password = Annotated[str, StringConstraints(min_length=6, max_length=72)]
Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
Content = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50000)]
TagName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]


# --- User ---

class UserCreate(BaseModel):
    name: Name
    username: Username
    password: Password


class UserLogin(BaseModel):
    username: Annotated[str, StringConstraints(strip_whitespace=True, to_lower=True, min_length=1)]
    password: Annotated[str, StringConstraints(min_length=1)]


class UserUpdate(BaseModel):
    name: Name | None = None
    username: Username | None = None


# --- Article ---

class ArticleCreate(BaseModel):
    title: Title
    content: Content
    status: ArticleStatus = "draft"
    tags: list[TagName] = []


class ArticleUpdate(BaseModel):
    title: Title | None = None
    content: Content | None = None
    status: ArticleStatus | None = None
    tags: list[TagName] | None = None


# --- Page views ---

class PageViewCreate(BaseModel):
    article: uuid.UUID


class ArticleRef(BaseModel):
    id: uuid.UUID
    title: str
    status: str


class PageViewCount(BaseModel):
    count: int
    articles: list[ArticleRef] = []


class PageViewBucket(BaseModel):
    date: str
    count: int
    articles: list[ArticleRef] = []


# --- Pagination ---

class PaginationMeta(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaginatedResponse(BaseModel):
    data: list = Field(default_factory=list)
    pagination: PaginationMeta
