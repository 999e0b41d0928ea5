"""
Configuration management for the chatgraph gateway
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Store selection: 'native' talks to MongoDB + the relational database,
    # 'memory' keeps everything in process (local development only)
    store_backend: str = "native"

    # Document store (users)
    mongo_url: str = "mongodb://localhost:27017"
    mongo_database: str = "test"
    mongo_pool_size: int = 1

    # Relational store (messages)
    database_url: str = "mysql+asyncmy://root@localhost:3306/test"
    database_pool_size: int = 1
    auto_create_tables: bool = False
    sql_echo: bool = False

    # Seconds a store call may wait for a pooled connection
    pool_timeout: float = 30.0

    # API Settings
    api_host: str = "0.0.0.0"
    api_port: int = 4000
    api_reload: bool = False
    cors_origins: list[str] = ["http://localhost:3000"]

    # Environment
    environment: str = "development"  # 'development', 'staging', 'production'
    debug: bool = True
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "CHATGRAPH_"
        case_sensitive = False


# Global settings instance
settings = Settings()
