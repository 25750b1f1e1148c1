from datetime import datetime
from typing import Any, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, field_validator

from domain.account import FLAGS_DELETED, FLAGS_NONE
from domain.formatting import format_score

MIME_TYPE_URL = "application/url"
MIME_TYPE_TEXT = "text/plain"
MAX_CONTENT_ITEMS = 200
HASH_LENGTH = 8
SAFE_URL_SCHEMES = ("http", "https")


class Content(BaseModel):
    id: int = 0
    key: str = ""
    title: str = ""
    mime_type: str = MIME_TYPE_TEXT
    data: bytes = b""
    score: int = 0
    submitted_at: Optional[datetime] = None
    submitted_by: int = 0
    updated_at: Optional[datetime] = None
    handle: Optional[str] = None
    flags: int = FLAGS_NONE
    metadata: Optional[Any] = None
    # ltree of ancestor keys, root first; empty for top level items
    path: str = ""

    class Config:
        from_attributes = True

    @field_validator("key", "path", "title", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("data", mode="before")
    @classmethod
    def as_bytes(cls, v):
        if v is None:
            return b""
        if isinstance(v, str):
            return v.encode("utf-8")
        return bytes(v)

    @property
    def hash(self) -> str:
        return self.key[0:HASH_LENGTH]

    @property
    def text(self) -> str:
        return self.data.decode("utf-8", errors="replace")

    @property
    def deleted(self) -> bool:
        return self.flags & FLAGS_DELETED == FLAGS_DELETED

    @property
    def is_link(self) -> bool:
        return self.mime_type == MIME_TYPE_URL

    @property
    def mime_type_slug(self) -> str:
        return "link" if self.is_link else "text"

    @property
    def ancestors(self) -> list[str]:
        return [label for label in self.path.split(".") if label]

    @property
    def level(self) -> int:
        return len(self.ancestors)

    @property
    def is_top(self) -> bool:
        return self.level == 0

    @property
    def parent_hash(self) -> str:
        if self.is_top:
            return ""
        return self.ancestors[-1][0:HASH_LENGTH]

    @property
    def op_hash(self) -> str:
        if self.is_top:
            return ""
        return self.ancestors[0][0:HASH_LENGTH]

    @property
    def full_path(self) -> str:
        """The item's own chain, ancestors plus itself."""
        return ".".join(self.ancestors + [self.key])

    @property
    def link(self) -> str:
        """The submitted URL, empty unless it is a plain http(s) link."""
        if not self.is_link:
            return ""
        text = self.text.strip()
        if urlparse(text).scheme.lower() not in SAFE_URL_SCHEMES:
            return ""
        return text

    @property
    def domain(self) -> str:
        return urlparse(self.link).netloc if self.link else ""

    @property
    def permalink(self) -> str:
        if self.submitted_at is None:
            return ""
        when = self.submitted_at
        return f"/{when.year:04d}/{when.month:02d}/{when.day:02d}/{self.hash}"

    @property
    def score_fmt(self) -> str:
        return format_score(self.score)


def get_all_ids(items: list[Content]) -> list[int]:
    return [item.id for item in items]
