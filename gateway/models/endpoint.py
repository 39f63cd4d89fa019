from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from gateway.models.common import CamelModel


class EndpointDefinition(BaseModel):
    """Contents of ``<slug>.json``. Unknown keys written by admins are kept."""

    model_config = ConfigDict(extra="allow")

    title: str
    description: str = ""
    method: str = "GET"
    path: str
    parameters: list = Field(default_factory=list)
    curl: str = ""
    response: Any = Field(default_factory=lambda: {"success": True})
    hidden: bool = False


class AddEndpointRequest(BaseModel):
    name: str = Field(min_length=1)
    title: str = Field(min_length=1)
    method: str = Field(min_length=1)
    path: str = Field(min_length=1)
    description: str = ""
    parameters: list = Field(default_factory=list)
    curl: str = ""
    response: Any = None


class EndpointSummary(BaseModel):
    name: str
    hidden: bool
    error: str | None = None


class EndpointListResponse(BaseModel):
    success: bool = True
    endpoints: list[EndpointSummary]


class ToggleVisibilityResponse(CamelModel):
    success: bool = True
    message: str
    new_state: bool


class ScriptResponse(BaseModel):
    success: bool = True
    script: str


class SaveScriptRequest(CamelModel):
    script_content: str


class ConfigResponse(BaseModel):
    success: bool = True
    config: dict


class SaveJsonRequest(CamelModel):
    json_content: str
