from datetime import datetime
from pydantic import BaseModel, Field


class ShareLink(BaseModel):
    id: str
    dataset_id: str
    url: str
    name: str
    created_at: datetime
    access_count: int = Field(default=0, ge=0)


class ShareResponse(BaseModel):
    url: str
    share_text: str
