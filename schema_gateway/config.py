import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    # Empty means no durable store: the registry runs from its cache alone.
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    JSON_SCHEMA_DRAFT: str = os.getenv("JSON_SCHEMA_DRAFT", "draft4")
    RPC_PATH: str = os.getenv("RPC_PATH", "/api/validation")


settings = Settings()
