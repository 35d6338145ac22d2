"""
Application settings
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./data/kmwf.db"

    # Identity provider session tokens
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"

    # Payment gateway
    RAZORPAY_KEY_SECRET: str = ""

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "https://khadimemillat.org"]

    DATA_DIR: str = "./data"
    APP_URL: str = "https://khadimemillat.org"

    # Organization (80G)
    ORGANIZATION_NAME: str = "Khadim-e-Millat Welfare Foundation"
    ORGANIZATION_PAN: str = "AABCK1234E"
    ORGANIZATION_ADDRESS: str = "123 Main Street, Mumbai, Maharashtra - 400001"
    ORGANIZATION_80G_REGISTRATION: str = "AABCK1234EF20240001"
    ORGANIZATION_80G_VALIDITY: str = "01/04/2024 to 31/03/2029"
    CERTIFICATE_PREFIX: str = "KMWF-80G"
    SUPPORT_EMAIL: str = "support@khadimemillat.org"
    SUPPORT_PHONE: str = "+91 80817 47259"

    # Email (Resend)
    RESEND_API_KEY: str = ""
    RESEND_API_URL: str = "https://api.resend.com/emails"
    NOTIFICATION_EMAIL: str = "notifications@notifications.khadimemillat.org"
    NOTIFICATION_FROM_NAME: str = "KhadiMillat Welfare Foundation"

    # SMS
    SMS_ENABLED: bool = False
    SMS_API_URL: str = ""
    SMS_API_KEY: str = ""
    SMS_SENDER_ID: str = "KMWF"

    # WhatsApp (Meta Cloud API)
    WHATSAPP_ENABLED: bool = False
    WHATSAPP_API_URL: str = "https://graph.facebook.com/v18.0"
    WHATSAPP_ACCESS_TOKEN: str = ""
    WHATSAPP_PHONE_NUMBER_ID: str = ""

    HTTP_TIMEOUT_SECONDS: float = 15.0

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
