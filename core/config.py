"""
Application configuration using Pydantic Settings, plus the YAML source file loader
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings

from core.exceptions import ConfigError
from schemas.source import SourceConfig


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Sources
    SOURCES_CONFIG_PATH: str = "config/sources.yaml"

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Event sink
    SINK_TYPE: str = "logging"
    SINK_URL: str = "http://localhost:9200"
    SINK_INDEX: str = "analytics"
    SINK_TIMEOUT: float = 10.0
    DATE_TIMESTAMP_FIELD: str = "logx-timestamp"

    # Source fetching
    FETCH_TIMEOUT: float = 30.0
    FETCH_MAX_RETRIES: int = 3
    FETCH_RETRY_DELAY: float = 1.0

    # Scheduler
    SHUTDOWN_TIMEOUT: Optional[float] = None

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()


def _read_yaml(path: Path) -> Any:
    if not path.is_file():
        raise ConfigError(
            "Sources config file not found",
            context={"config_path": str(path)}
        )
    try:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(
            "Sources config file is not valid YAML",
            context={"config_path": str(path)},
            original_exception=e
        )


def load_source_configs(path: str) -> List[SourceConfig]:
    """
    Load every configured source from a YAML file.

    The file holds either a top-level ``sources:`` list or a bare list of
    source mappings.

    Raises:
        ConfigError: missing file, malformed YAML, invalid entry or a
            duplicated source name
    """
    config_path = Path(path)
    data = _read_yaml(config_path)

    if data is None:
        return []
    if isinstance(data, dict):
        entries = data.get("sources") or []
    else:
        entries = data
    if not isinstance(entries, list):
        raise ConfigError(
            "Sources config must be a list of sources",
            context={"config_path": str(config_path)}
        )

    sources: List[SourceConfig] = []
    seen: Dict[str, int] = {}

    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ConfigError(
                "Source entry must be a mapping",
                context={"config_path": str(config_path), "entry_index": index}
            )
        try:
            source = SourceConfig(**entry)
        except PydanticValidationError as e:
            raise ConfigError(
                "Invalid source entry",
                context={"config_path": str(config_path), "entry_index": index},
                original_exception=e
            )

        if source.name in seen:
            raise ConfigError(
                f"Duplicate source name: {source.name}",
                context={
                    "config_path": str(config_path),
                    "entry_index": index,
                    "first_index": seen[source.name]
                }
            )
        seen[source.name] = index
        sources.append(source)

    return sources
