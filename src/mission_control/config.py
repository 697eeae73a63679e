"""Configuration loading from environment variables."""

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class Config:
    db_path: Path = field(default_factory=lambda: Path.home() / ".mission_control" / "mc.db")
    host: str = "127.0.0.1"
    port: int = 8787
    openai_api_key: str | None = None
    embedding_model: str = "text-embedding-ada-002"
    embedding_url: str = "https://api.openai.com/v1/embeddings"
    vector_weight: float = 0.7
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        config = cls()

        if db := os.environ.get("MC_DB_PATH"):
            config.db_path = Path(db)

        if host := os.environ.get("MC_HOST"):
            config.host = host

        if port := os.environ.get("MC_PORT"):
            config.port = int(port)

        config.openai_api_key = os.environ.get("OPENAI_API_KEY")

        if model := os.environ.get("MC_EMBEDDING_MODEL"):
            config.embedding_model = model

        if url := os.environ.get("MC_EMBEDDING_URL"):
            config.embedding_url = url

        if weight := os.environ.get("MC_VECTOR_WEIGHT"):
            config.vector_weight = float(weight)

        if level := os.environ.get("MC_LOG_LEVEL"):
            config.log_level = level.upper()

        return config


def get_config() -> Config:
    return Config.from_env()
