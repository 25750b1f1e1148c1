import json
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

FLAGS_NONE = 0
FLAGS_DELETED = 1

ANONYMOUS_HANDLE = "anonymous"


class AccountKey(BaseModel):
    id: Optional[str] = None
    # PKIX (SubjectPublicKeyInfo) DER, base64 encoded in the metadata blob
    public: Optional[str] = None


class AccountMetadata(BaseModel):
    password: Optional[str] = None
    provider: Optional[str] = None
    key: Optional[AccountKey] = None

    model_config = {"extra": "allow"}

    @classmethod
    def from_blob(cls, blob: Any) -> "AccountMetadata":
        """Parse the opaque metadata column, whatever the driver handed us."""
        if blob is None or blob == b"" or blob == "":
            return cls()
        if isinstance(blob, (bytes, bytearray, memoryview)):
            blob = bytes(blob).decode("utf-8")
        if isinstance(blob, str):
            blob = json.loads(blob)
        return cls.model_validate(blob)


class Account(BaseModel):
    id: int = 0
    key: str = ""
    handle: str = ""
    email: Optional[str] = None
    score: int = 0
    flags: int = FLAGS_NONE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    metadata: AccountMetadata = Field(default_factory=AccountMetadata)

    class Config:
        from_attributes = True

    @field_validator("metadata", mode="before")
    @classmethod
    def parse_metadata(cls, v):
        if isinstance(v, AccountMetadata):
            return v
        return AccountMetadata.from_blob(v)

    @field_validator("key", mode="before")
    @classmethod
    def strip_key(cls, v):
        return (v or "").strip()

    @property
    def hash(self) -> str:
        return self.key[0:8]

    @property
    def deleted(self) -> bool:
        return self.flags & FLAGS_DELETED == FLAGS_DELETED

    @property
    def is_anonymous(self) -> bool:
        return self.id == 0 and self.handle == ANONYMOUS_HANDLE

    @property
    def public_key(self) -> Optional[str]:
        if self.metadata.key is None:
            return None
        return self.metadata.key.public


def anonymous_account() -> Account:
    return Account(id=0, handle=ANONYMOUS_HANDLE)
