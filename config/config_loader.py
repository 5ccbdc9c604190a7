"""Load settings.yaml into typed dataclasses. Validates API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

# Environment override for the concurrency limiter size.
MAX_PARALLEL_ENV = "LLM_MAX_PARALLEL"

_DEFAULT_MAX_PARALLEL = 3
_DEFAULT_TIMEOUT_SEC = 30.0
_DEFAULT_HISTORY_LIMIT = 50


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: float
    max_tokens: int
    temperature: float = 0.2
    cost_per_1k_tokens: float = 0.0
    base_url: str | None = None


@dataclass
class DefaultsConfig:
    max_parallel: int = _DEFAULT_MAX_PARALLEL
    provider_timeout_sec: float = _DEFAULT_TIMEOUT_SEC
    selection_strategy: str = "quality"
    task_type: str = "code"
    default_models: list[str] = field(default_factory=list)
    history_path: Path = Path("./.orchestra/history.json")
    history_limit: int = _DEFAULT_HISTORY_LIMIT
    output_dir: Path = Path("./output")


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    available_providers: set[str] = field(default_factory=set)


def _resolve_max_parallel(configured: int) -> int:
    """LLM_MAX_PARALLEL wins over the settings file when it holds a positive int."""
    raw = os.environ.get(MAX_PARALLEL_ENV, "").strip()
    if not raw:
        return configured
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer", MAX_PARALLEL_ENV, raw)
        return configured
    if value < 1:
        logger.warning("Ignoring %s=%d: must be >= 1", MAX_PARALLEL_ENV, value)
        return configured
    return value


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs warnings for missing API keys but does not raise; callers check
    available_providers count.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    defaults_raw = raw.get("defaults", {})
    defaults = DefaultsConfig(
        max_parallel=_resolve_max_parallel(int(defaults_raw.get("max_parallel", _DEFAULT_MAX_PARALLEL))),
        provider_timeout_sec=float(defaults_raw.get("provider_timeout_sec", _DEFAULT_TIMEOUT_SEC)),
        selection_strategy=str(defaults_raw.get("selection_strategy", "quality")),
        task_type=str(defaults_raw.get("task_type", "code")),
        default_models=list(defaults_raw.get("default_models", [])),
        history_path=Path(defaults_raw.get("history_path", "./.orchestra/history.json")),
        history_limit=int(defaults_raw.get("history_limit", _DEFAULT_HISTORY_LIMIT)),
        output_dir=Path(defaults_raw.get("output_dir", "./output")),
    )

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in (raw.get("models") or {}).items():
        model_cfg = ModelConfig(
            name=provider_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=float(model_raw.get("timeout_sec", defaults.provider_timeout_sec)),
            max_tokens=int(model_raw["max_tokens"]),
            temperature=float(model_raw.get("temperature", 0.2)),
            cost_per_1k_tokens=float(model_raw.get("cost_per_1k_tokens", 0.0)),
            base_url=model_raw.get("base_url"),
        )
        models[provider_name] = model_cfg

        api_key = os.environ.get(model_raw["api_key_env"], "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s (set %s in .env)",
                provider_name,
                model_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        models=models,
        available_providers=available_providers,
    )
