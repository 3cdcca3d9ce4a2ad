from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional

class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"]
    content: str

class LeadInfo(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None
    budget: Optional[str] = None
    timeline: Optional[str] = None
    country: Optional[str] = None

class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(default_factory=list)
    lead: Optional[LeadInfo] = None

class ChatResponse(BaseModel):
    reply: str

class ErrorResponse(BaseModel):
    error: str

class HealthResponse(BaseModel):
    ok: bool = True

class LeadNotification(BaseModel):
    """Body POSTed to the lead webhook. Keys are camelCase on the wire."""
    model_config = ConfigDict(populate_by_name=True)

    source: str = "chatbot"
    lead: Dict[str, Any] = Field(default_factory=dict)
    raw_reply: str = Field(alias="rawReply")
    when: str

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
