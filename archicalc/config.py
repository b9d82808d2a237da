from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./archicalc.db"
    APP_NAME: str = "ArchiCalc"
    LOG_LEVEL: str = "INFO"
    RUN_MIGRATIONS: bool = True

    # Auth
    JWT_SECRET: str = ""  # REQUIRED in production — fail loudly if missing at auth time
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_EXPIRE_MINUTES: int = 15
    JWT_REFRESH_EXPIRE_DAYS: int = 30

    # Share links are built against this origin
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    # What the "system" theme resolves to on this host: 'light' | 'dark'
    SYSTEM_COLOR_SCHEME: str = "light"

    # Local calculation history (offline view, never synced)
    HISTORY_PATH: str = "./data/history.json"
    HISTORY_LIMIT: int = 50

    # Signed-in workspaces kept in memory, least recently used evicted first
    WORKSPACE_LIMIT: int = 1000

    class Config:
        env_file = ".env"


settings = Settings()
