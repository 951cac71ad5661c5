from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, field_serializer

class UrlFields(BaseModel):
    # id, hits and timestamps belong to the store; extra keys are dropped
    model_config = ConfigDict(extra="ignore")

    path: str
    title: str
    body: str
    icon: str
    redirect: str

class UrlOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    path: str
    title: str
    body: str
    icon: str
    redirect: str
    hits: int
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def _rfc3339(self, value: datetime) -> str:
        # stored as naive UTC
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()

class ErrorResponse(BaseModel):
    errmsg: str
    detail: str
