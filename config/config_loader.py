"""Load settings.yaml into typed dataclasses. Resolves the provider selection once at startup."""

import logging
import os
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


class ProviderKind(str, Enum):
    """Closed set of supported generative-text backends."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GEMINI = "gemini"


@dataclass(frozen=True)
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: float
    max_tokens: int
    base_url: str | None = None

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind(self.sdk)


@dataclass(frozen=True)
class PromptsConfig:
    opening: str
    rebuttal: str
    opening_seed: str
    fallback_opening: str
    fallback_rebuttal: str


@dataclass(frozen=True)
class DefaultsConfig:
    provider: str
    word_limit: int
    transcripts_dir: Path
    timeout_retries: int = 0


@dataclass(frozen=True)
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 3001
    allowed_origins: tuple[str, ...] = ()


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig
    server: ServerConfig = field(default_factory=ServerConfig)
    available_providers: set[str] = field(default_factory=set)

    @property
    def selected_model(self) -> ModelConfig:
        """The model config for the provider chosen at startup."""
        return self.models[self.defaults.provider]


def _apply_env_overrides(defaults: DefaultsConfig, models: dict[str, ModelConfig]) -> DefaultsConfig:
    """Apply AI_PROVIDER / AI_MODEL / AI_MAX_TOKENS / AI_TIMEOUT_SEC to the selection."""
    provider = os.environ.get("AI_PROVIDER", "").strip() or defaults.provider
    if provider not in models:
        raise ValueError(f"Unknown provider '{provider}'; configured: {', '.join(sorted(models))}")

    selected = models[provider]
    overrides: dict[str, object] = {}
    if model := os.environ.get("AI_MODEL", "").strip():
        overrides["model"] = model
    if max_tokens := os.environ.get("AI_MAX_TOKENS", "").strip():
        overrides["max_tokens"] = int(max_tokens)
    if timeout := os.environ.get("AI_TIMEOUT_SEC", "").strip():
        overrides["timeout_sec"] = float(timeout)
    if overrides:
        models[provider] = replace(selected, **overrides)
        logger.debug("Environment overrides for %s: %s", provider, overrides)

    return replace(defaults, provider=provider)


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing, ValueError if a model
    names an unsupported sdk or the selected provider is unknown.
    Logs missing API keys but does not raise; the gateway reports
    ProviderUnavailable per call instead.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        provider=str(defaults_raw["provider"]),
        word_limit=int(defaults_raw["word_limit"]),
        transcripts_dir=Path(defaults_raw["transcripts_dir"]),
        timeout_retries=int(defaults_raw.get("timeout_retries", 0)),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        opening=prompts_raw["opening"],
        rebuttal=prompts_raw["rebuttal"],
        opening_seed=prompts_raw["opening_seed"],
        fallback_opening=prompts_raw["fallback_opening"],
        fallback_rebuttal=prompts_raw["fallback_rebuttal"],
    )

    server_raw = raw.get("server") or {}
    server = ServerConfig(
        host=str(server_raw.get("host", "0.0.0.0")),
        port=int(server_raw.get("port", 3001)),
        allowed_origins=tuple(server_raw.get("allowed_origins") or ()),
    )

    models: dict[str, ModelConfig] = {}
    for provider_name, model_raw in raw["models"].items():
        sdk = str(model_raw["sdk"])
        try:
            ProviderKind(sdk)
        except ValueError as exc:
            raise ValueError(f"Model '{provider_name}' uses unsupported sdk '{sdk}'") from exc
        models[provider_name] = ModelConfig(
            name=provider_name,
            sdk=sdk,
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=float(model_raw["timeout_sec"]),
            max_tokens=int(model_raw["max_tokens"]),
            base_url=model_raw.get("base_url"),
        )

    defaults = _apply_env_overrides(defaults, models)

    available_providers: set[str] = set()
    for provider_name, model_cfg in models.items():
        api_key = os.environ.get(model_cfg.api_key_env, "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider has no API key: %s (set %s in .env)",
                provider_name,
                model_cfg.api_key_env,
            )

    return AppConfig(
        defaults=defaults,
        models=models,
        prompts=prompts,
        server=server,
        available_providers=available_providers,
    )
