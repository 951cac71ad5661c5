import os
from dataclasses import dataclass

@dataclass(frozen=True)
class Settings:
    database_url: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./data.db")
    admin_token: str = os.getenv("ADMIN_TOKEN", "")
    fallback_url: str = os.getenv("FALLBACK_URL", "https://www.bilibili.com/video/BV1MX4y1N75X")
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8080"))
    socket_path: str = os.getenv("SOCKET_PATH", "")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    db_connect_attempts: int = int(os.getenv("DB_CONNECT_ATTEMPTS", "30"))
    shutdown_grace_seconds: float = float(os.getenv("SHUTDOWN_GRACE_SECONDS", "2.0"))

settings = Settings()
