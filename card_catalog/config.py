"""YAML configuration loader and validation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional


import yaml

from card_catalog.adapters import known_providers

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("catalog.yaml")
DEFAULT_BATCH_SIZE = 100

TCGDEX_BASE_URL = "https://api.tcgdex.net/v2/en"
POCKET_DATABASE_BASE_URL = (
    "https://raw.githubusercontent.com/flibustier/pokemon-tcg-pocket-database/main/dist"
)


@dataclass
class ProviderConfig:
    """Configuration for a single catalog provider."""

    name: str
    base_url: str = ""
    batch_size: int = DEFAULT_BATCH_SIZE
    rate_limit_ms: int = 0
    # Per-card-detail providers
    series_id: str = "tcgp"
    image_variant: str = "high"
    image_format: str = "webp"
    image_fallback_format: Optional[str] = "png"
    # Bulk dataset providers
    sets_path: str = "/sets.json"
    cards_path: str = "/cards.json"
    image_base: Optional[str] = None


@dataclass
class AppConfig:
    """Top-level application configuration."""

    provider: str = "tcgdex"  # Provider activated at startup
    providers: Dict[str, ProviderConfig] = field(default_factory=dict)
    timeout_s: Optional[float] = None  # None: no timeout on upstream calls
    user_agent: str = "CardCatalog/0.1"

    def __post_init__(self) -> None:
        if not self.providers:
            self.providers = {
                "tcgdex": ProviderConfig(name="tcgdex", base_url=TCGDEX_BASE_URL),
                "pocket-database": ProviderConfig(
                    name="pocket-database",
                    base_url=POCKET_DATABASE_BASE_URL,
                    image_fallback_format=None,
                ),
            }

    @property
    def active(self) -> ProviderConfig:
        """Return the ProviderConfig for the currently selected provider."""
        return self.providers[self.provider]

    def provider_config(self, name: str) -> ProviderConfig:
        try:
            return self.providers[name]
        except KeyError:
            raise ValueError(
                f"Provider '{name}' is not configured. "
                f"Available: {list(self.providers.keys())}"
            ) from None


def load_config(path: Optional[Path] = None, provider: Optional[str] = None) -> AppConfig:
    """Load configuration from a YAML file, falling back to defaults."""
    config_path = path or DEFAULT_CONFIG_PATH
    if not config_path.exists():
        logger.info("No config file at %s, using defaults", config_path)
        config = AppConfig()
    else:
        logger.info("Loading config from %s", config_path)
        with open(config_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
        config = _parse_config(raw) if raw else AppConfig()

    if provider:
        config.provider = provider

    _validate_config(config)
    return config


def _parse_config(raw: Dict[str, Any]) -> AppConfig:
    """Parse raw YAML dict into AppConfig."""
    config = AppConfig()

    if "provider" in raw:
        config.provider = str(raw["provider"])

    if "providers" in raw:
        defaults = config.providers
        config.providers = {}
        for name, prov_raw in (raw["providers"] or {}).items():
            config.providers[name] = _parse_provider_config(
                name, prov_raw or {}, defaults.get(name)
            )

    if "timeout_s" in raw:
        timeout = raw["timeout_s"]
        config.timeout_s = float(timeout) if timeout is not None else None

    if "user_agent" in raw:
        config.user_agent = str(raw["user_agent"])

    return config


def _parse_provider_config(
    name: str, raw: Dict[str, Any], default: Optional[ProviderConfig]
) -> ProviderConfig:
    """Parse one provider block, filling gaps from the built-in default."""
    base = default or ProviderConfig(name=name)
    return ProviderConfig(
        name=name,
        base_url=str(raw.get("base_url", base.base_url)),
        batch_size=int(raw.get("batch_size", base.batch_size)),
        rate_limit_ms=int(raw.get("rate_limit_ms", base.rate_limit_ms)),
        series_id=str(raw.get("series_id", base.series_id)),
        image_variant=str(raw.get("image_variant", base.image_variant)),
        image_format=str(raw.get("image_format", base.image_format)),
        image_fallback_format=raw.get("image_fallback_format", base.image_fallback_format),
        sets_path=str(raw.get("sets_path", base.sets_path)),
        cards_path=str(raw.get("cards_path", base.cards_path)),
        image_base=raw.get("image_base", base.image_base),
    )


def _validate_config(config: AppConfig) -> None:
    """Validate config and raise on errors."""
    if config.provider not in config.providers:
        raise ValueError(
            f"Config error: active provider '{config.provider}' not found in providers config. "
            f"Available: {list(config.providers.keys())}"
        )

    known = known_providers()
    for name, prov in config.providers.items():
        if name not in known:
            raise ValueError(
                f"Config error: unknown provider '{name}'. Known: {known}"
            )
        if not prov.base_url:
            raise ValueError(f"Config error: provider '{name}' has no base_url")
        if prov.batch_size <= 0:
            raise ValueError(
                f"Config error: provider '{name}' batch_size must be positive, "
                f"got {prov.batch_size}"
            )

    logger.info(
        "Config validated: provider=%s, %d providers configured",
        config.provider,
        len(config.providers),
    )
