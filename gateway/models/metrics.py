from pydantic import BaseModel

from gateway.models.common import CamelModel


class Uptime(BaseModel):
    days: int
    hours: int
    minutes: int
    seconds: int


class EndpointDetail(CamelModel):
    name: str
    total_requests: int
    avg_response_time: str
    success_rate: str


class MetricsSnapshot(CamelModel):
    total_requests: int
    uptime: Uptime
    success_rate: str
    avg_response_time: str
    requests_per_second: str
    requests_per_minute: str
    endpoint_details: list[EndpointDetail]


class MetricsResponse(BaseModel):
    success: bool = True
    metrics: MetricsSnapshot
