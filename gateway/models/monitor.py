from pydantic import BaseModel, Field

from gateway.models.common import CamelModel

# Any monitor type is stored as given; only POST_JSON constrains requestBody.
GET = "GET"
POST_JSON = "POST_JSON"


class MonitoredEndpoint(CamelModel):
    name: str
    test_url: str
    type: str
    request_body: str = ""
    hidden: bool = False


class AddMonitorRequest(CamelModel):
    name: str = Field(min_length=1)
    test_url: str = Field(min_length=1)
    type: str = Field(min_length=1)
    request_body: str | None = None


class EditMonitorRequest(CamelModel):
    test_url: str | None = None
    type: str | None = None
    request_body: str | None = None


class MonitorListResponse(BaseModel):
    success: bool = True
    endpoints: list[MonitoredEndpoint]


class MonitorResponse(BaseModel):
    success: bool = True
    message: str
    endpoint: MonitoredEndpoint
