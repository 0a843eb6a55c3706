from datetime import datetime

from pydantic import BaseModel


class UploadPolicyResponse(BaseModel):
    url: str
    fields: dict[str, str] = {}
    prefix: str
    key_template: str
    expires_at: datetime
