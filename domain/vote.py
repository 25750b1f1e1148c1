from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from domain.account import Account, FLAGS_NONE
from domain.content import Content


class Vote(BaseModel):
    id: int = 0
    submitted_by: Optional[Account] = None
    item: Optional[Content] = None
    weight: int = 0
    submitted_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    flags: int = FLAGS_NONE

    class Config:
        from_attributes = True

    @property
    def is_up(self) -> bool:
        return self.weight > 0

    @property
    def is_down(self) -> bool:
        return self.weight < 0
