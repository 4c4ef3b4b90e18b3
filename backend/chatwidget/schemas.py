from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class WidgetConfigOut(CamelModel):
    business_name: str = Field("Business", alias="businessName")
    bot_name: str = Field("Botsy", alias="botName")
    greeting: Optional[str] = None
    primary_color: str = Field("#CCFF00", alias="primaryColor")
    position: str = "bottom-right"
    is_enabled: bool = Field(True, alias="isEnabled")
    logo_url: Optional[str] = Field(None, alias="logoUrl")
    widget_size: str = Field("medium", alias="widgetSize")
    animation_style: str = Field("scale", alias="animationStyle")


class WidgetConfigResponse(CamelModel):
    success: bool
    config: Optional[WidgetConfigOut] = None
    error: Optional[str] = None


class ChatRequest(CamelModel):
    message: Optional[str] = None
    session_id: Optional[str] = Field(None, alias="sessionId")


class ChatReplyOut(CamelModel):
    success: bool
    reply: Optional[str] = None
    is_manual_mode: bool = Field(False, alias="isManualMode")
    escalated: bool = False
    error: Optional[str] = None


class HistoryMessage(CamelModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: Optional[datetime] = None
    is_manual: bool = Field(False, alias="isManual")


class HistoryOut(CamelModel):
    success: bool
    messages: List[HistoryMessage] = []
    is_manual_mode: bool = Field(False, alias="isManualMode")
    agent_typing: bool = Field(False, alias="agentTyping")
    customer_typing: bool = Field(False, alias="customerTyping")
    last_read_by_agent: Optional[datetime] = Field(None, alias="lastReadByAgent")
    last_read_by_customer: Optional[datetime] = Field(None, alias="lastReadByCustomer")


class ConversationRef(CamelModel):
    tenant_id: str = Field(alias="tenantId")
    session_id: str = Field(alias="sessionId")


class ManualToggleIn(ConversationRef):
    is_manual: bool = Field(alias="isManual")


class ManualMessageIn(ConversationRef):
    message: Optional[str] = None


class PresenceIn(ConversationRef):
    who: Literal["customer", "agent"]


class FeedbackIn(ConversationRef):
    message_index: int = Field(alias="messageIndex")
    rating: Literal["positive", "negative"]
    message_content: Optional[str] = Field(None, alias="messageContent")


class SummaryMessage(CamelModel):
    role: Literal["user", "assistant"]
    content: str


class SummaryIn(CamelModel):
    tenant_id: str = Field(alias="tenantId")
    session_id: Optional[str] = Field(None, alias="sessionId")
    customer_email: Optional[str] = Field(None, alias="customerEmail")
    messages: List[SummaryMessage] = []
