from pydantic_settings import BaseSettings
from typing import List
import os
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    # App Settings
    APP_NAME: str = os.getenv("APP_NAME", "CitizenServices")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    TIMEZONE: str = os.getenv("TIMEZONE", "Asia/Kolkata")

    # MongoDB Settings
    MONGO_URI: str = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    DB_NAME: str = os.getenv("DB_NAME", "citizen_services_db")

    # JWT Auth (tokens are issued by the dashboard auth service)
    SECRET_KEY: str = os.getenv("SECRET_KEY", "your_secret_key_here")
    ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",  # Admin dashboard
        "http://localhost:5000",  # Chatbot service
    ]

    # Appointment defaults for lazily created configurations
    DEFAULT_MAX_ADVANCE_BOOKING_DAYS: int = int(os.getenv("DEFAULT_MAX_ADVANCE_BOOKING_DAYS", "30"))
    DEFAULT_SLOT_DURATION_MINUTES: int = int(os.getenv("DEFAULT_SLOT_DURATION_MINUTES", "30"))

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
