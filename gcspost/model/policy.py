from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from gcspost.constants import DEFAULT_EXPIRATION_MINUTES, MAX_EXPIRATION_MINUTES


class UploadPolicy(BaseModel):
    """ A signed POST policy: where to post, and the form fields to post with the file """
    url: str
    fields: dict[str, str] = {}
    expires_at: Optional[datetime] = None


class PolicyRequest(BaseModel):
    username: str = Field(min_length=1)
    job_id: Optional[str] = None
    expiration_minutes: int = Field(default=DEFAULT_EXPIRATION_MINUTES, ge=1, le=MAX_EXPIRATION_MINUTES)
