# backend/chatwidget/models.py
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base


class Tenant(Base):
    __tablename__ = "tenants"
    id = Column(String, primary_key=True, index=True)
    business_name = Column(String, nullable=False, default="Business")
    bot_name = Column(String, nullable=False, default="Botsy")
    greeting = Column(Text, nullable=True, default="Hi! How can I help you?")
    primary_color = Column(String, nullable=False, default="#CCFF00")
    position = Column(String, nullable=False, default="bottom-right")
    is_enabled = Column(Boolean, nullable=False, default=True)
    logo_url = Column(String, nullable=True)
    widget_size = Column(String, nullable=False, default="medium")
    animation_style = Column(String, nullable=False, default="scale")
    contact_email = Column(String, nullable=True)


class Conversation(Base):
    __tablename__ = "conversations"
    __table_args__ = (UniqueConstraint("tenant_id", "session_id", name="uq_conversation_session"),)
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, ForeignKey("tenants.id"), index=True, nullable=False)
    session_id = Column(String, index=True, nullable=False)
    is_manual_mode = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    last_read_by_agent = Column(DateTime(timezone=True), nullable=True)
    last_read_by_customer = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    messages = relationship("Message", order_by="Message.id", back_populates="conversation")


class Message(Base):
    __tablename__ = "messages"
    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(Integer, ForeignKey("conversations.id"), index=True, nullable=False)
    role = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    is_manual = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    conversation = relationship("Conversation", back_populates="messages")


class Escalation(Base):
    __tablename__ = "escalations"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, ForeignKey("tenants.id"), index=True, nullable=False)
    session_id = Column(String, nullable=False)
    customer_message = Column(Text, nullable=False)
    status = Column(String, nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Feedback(Base):
    __tablename__ = "chat_feedback"
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    session_id = Column(String, nullable=False)
    message_index = Column(Integer, nullable=False)
    rating = Column(String, nullable=False)
    message_content = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
