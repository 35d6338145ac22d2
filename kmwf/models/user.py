"""
User profile and in-app notification models
"""
from sqlalchemy import Column, String, Text, JSON, DateTime, Boolean
from datetime import datetime
from kmwf.database import Base


class UserModel(Base):
    """Local mirror of an identity-provider user"""
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    external_user_id = Column(String, unique=True, index=True)  # identity provider subject
    name = Column(String, nullable=False)
    email = Column(String, index=True)
    phone = Column(String)
    role = Column(String, nullable=False, default="user")
    notification_preferences = Column(JSON)  # {"email": bool, "whatsapp": bool, "sms": bool}

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class InAppNotificationModel(Base):
    """In-app notification"""
    __tablename__ = "in_app_notifications"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    body = Column(Text, nullable=False)
    url = Column(String)
    type = Column(String, nullable=False)  # donation_success, ...
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
