"""Configuration management for nvccoach."""

import json
import os
import shutil
from dataclasses import dataclass, asdict

from .paths import DATA_DIR, CONFIG_FILE, atomic_json_write

# Available Claude models with their specifications
CLAUDE_MODELS: dict[str, dict] = {
    "claude-opus-4-6": {
        "name": "Claude Opus 4.6",
        "context_window": 200_000,
        "max_output_tokens": 32_000,
    },
    "claude-sonnet-4-5-20250929": {
        "name": "Claude Sonnet 4.5",
        "context_window": 200_000,
        "max_output_tokens": 16_384,
    },
    "claude-haiku-4-5-20251001": {
        "name": "Claude Haiku 4.5",
        "context_window": 200_000,
        "max_output_tokens": 8_192,
    },
}

# Replies are short coaching turns; cap output well below the model limit
RESPONSE_MAX_TOKENS = 1000


def get_model_specs(model_id: str) -> dict:
    """Get specs for a model, with fallback defaults."""
    return CLAUDE_MODELS.get(model_id, {
        "name": model_id,
        "context_window": 200_000,
        "max_output_tokens": 8_192,
    })


@dataclass
class Config:
    """Application configuration."""

    main_model: str = "claude-sonnet-4-5-20250929"
    use_rag: bool = True
    rag_top_k: int = 5
    rag_similarity_threshold: float = 0.7
    rag_namespace: str = "nvc_knowledge_base"
    embedding_model: str = "BAAI/bge-small-en-v1.5"
    progress_storage_key: str = "nvc_progress"
    request_timeout: float = 30.0


@dataclass
class ZeroDBSettings:
    """Connection settings for the knowledge base search API."""

    api_url: str
    project_id: str
    api_key: str
    namespace: str
    top_k: int
    similarity_threshold: float
    embedding_model: str
    timeout: float


def load_config() -> Config:
    """Load config from disk, creating defaults if needed."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)

    if CONFIG_FILE.exists():
        try:
            with open(CONFIG_FILE) as f:
                data = json.load(f)
            return Config(
                **{k: v for k, v in data.items() if k in Config.__dataclass_fields__}
            )
        except (json.JSONDecodeError, TypeError, AttributeError):
            # Back up corrupted config before overwriting with defaults
            backup_path = CONFIG_FILE.with_suffix(".json.bak")
            try:
                shutil.copy2(CONFIG_FILE, backup_path)
            except OSError:
                pass

    config = Config()
    save_config(config)
    return config


def save_config(config: Config) -> None:
    """Save config to disk."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    atomic_json_write(CONFIG_FILE, asdict(config))


def zerodb_settings(config: Config) -> ZeroDBSettings | None:
    """Build knowledge base settings from the environment.

    Returns None when the API URL, project id or key is not set.
    Optional ZERODB_* variables override the config values.
    """
    api_url = os.environ.get("ZERODB_API_URL", "").rstrip("/")
    project_id = os.environ.get("ZERODB_PROJECT_ID", "")
    api_key = os.environ.get("ZERODB_API_KEY", "")
    if not (api_url and project_id and api_key):
        return None

    try:
        top_k = int(os.environ.get("ZERODB_TOP_K", config.rag_top_k))
    except ValueError:
        top_k = config.rag_top_k
    try:
        threshold = float(os.environ.get("ZERODB_SIMILARITY_THRESHOLD", config.rag_similarity_threshold))
    except ValueError:
        threshold = config.rag_similarity_threshold

    return ZeroDBSettings(
        api_url=api_url,
        project_id=project_id,
        api_key=api_key,
        namespace=os.environ.get("ZERODB_NAMESPACE") or config.rag_namespace,
        top_k=top_k,
        similarity_threshold=threshold,
        embedding_model=config.embedding_model,
        timeout=config.request_timeout,
    )
