from datetime import datetime

from pydantic import BaseModel

from gateway.models.common import CamelModel


class ApiKeyRecord(CamelModel):
    api_key: str
    created_at: datetime
    ip_address: str
    last_used: datetime
    usage_count: int = 0


class NewApiKeyResponse(BaseModel):
    success: bool = True
    api_key: str
    message: str
