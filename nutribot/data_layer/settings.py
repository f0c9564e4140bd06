"""Extraction settings loaded from YAML with environment overrides."""
import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Dict, List, Optional

import yaml


# Substrings that invalidate a food name returned by the model.
# English and Portuguese (the bot's original locale); override via YAML.
DEFAULT_INVALID_NAME_TERMS: List[str] = [
    "not specified",
    "unspecified",
    "not found",
    "unknown food",
    "no food",
    "não especificado",
    "nao especificado",
    "não encontrado",
    "nao encontrado",
    "desconhecido",
    "alcohol",
    "álcool",
    "cigarette",
    "cigarro",
    "drug",
    "droga",
]

# Names rejected only on exact (lower-cased) match.
DEFAULT_GENERIC_NAME_TOKENS: List[str] = [
    "food",
    "meal",
    "comida",
    "alimento",
    "refeição",
    "n/a",
]

DEFAULT_CONFIDENCE_ALIASES: Dict[str, str] = {
    "alta": "high",
    "média": "medium",
    "media": "medium",
    "baixa": "low",
}

CALORIE_POLICIES = ("strict", "lenient")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class ExtractionSettings:
    """Configuration consumed by the extraction pipeline."""

    cache_ttl_seconds: int = 86400
    max_weight_grams: float = 5000.0
    calorie_tolerance_pct: float = 5.0
    calorie_warning_ceiling_pct: float = 15.0
    calorie_policy: str = "strict"
    invalid_name_terms: List[str] = field(
        default_factory=lambda: list(DEFAULT_INVALID_NAME_TERMS)
    )
    generic_name_tokens: List[str] = field(
        default_factory=lambda: list(DEFAULT_GENERIC_NAME_TOKENS)
    )
    confidence_aliases: Dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_CONFIDENCE_ALIASES)
    )
    model_name: str = "gemini-2.0-flash"
    temperature: float = 0.7
    max_output_tokens: int = 2048
    request_timeout_seconds: float = 30.0
    cleanup_interval_seconds: float = 3600.0
    log_level: str = "INFO"

    def __post_init__(self):
        if self.calorie_policy not in CALORIE_POLICIES:
            raise ValueError(
                f"calorie_policy must be one of {', '.join(CALORIE_POLICIES)}, "
                f"got '{self.calorie_policy}'"
            )
        if self.cache_ttl_seconds <= 0:
            raise ValueError("cache_ttl_seconds must be positive")
        if self.max_weight_grams <= 0:
            raise ValueError("max_weight_grams must be positive")
        if self.calorie_tolerance_pct < 0:
            raise ValueError("calorie_tolerance_pct cannot be negative")
        if self.calorie_warning_ceiling_pct < self.calorie_tolerance_pct:
            raise ValueError(
                "calorie_warning_ceiling_pct must be >= calorie_tolerance_pct"
            )

    @classmethod
    def from_env(cls) -> "ExtractionSettings":
        """Build default settings with environment overrides applied."""
        return cls().apply_env()

    def apply_env(self) -> "ExtractionSettings":
        """Return a copy with environment overrides applied.

        Recognised variables: NUTRITION_CACHE_TTL_SECONDS, NUTRIBOT_LOG_LEVEL,
        GEMINI_MODEL.
        """
        overrides = {}
        ttl = os.environ.get("NUTRITION_CACHE_TTL_SECONDS")
        if ttl:
            overrides["cache_ttl_seconds"] = int(ttl)
        level = os.environ.get("NUTRIBOT_LOG_LEVEL")
        if level:
            overrides["log_level"] = level.upper()
        model = os.environ.get("GEMINI_MODEL")
        if model:
            overrides["model_name"] = model
        return replace(self, **overrides) if overrides else self


class ExtractionSettingsLoader:
    """Loader for extraction settings from YAML."""

    def __init__(self, yaml_path: str):
        """Initialize settings loader from YAML file.

        Args:
            yaml_path: Path to YAML file containing extraction settings
        """
        self.yaml_path = Path(yaml_path)

    def load(self) -> ExtractionSettings:
        """Load settings from YAML file.

        Every key is optional; missing keys keep their defaults.

        Returns:
            ExtractionSettings object

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            ValueError: If the file has unknown keys or invalid values
        """
        with open(self.yaml_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"{self.yaml_path}: expected a mapping at top level")

        known = {f.name for f in fields(ExtractionSettings)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(
                f"{self.yaml_path}: unknown setting(s): {', '.join(unknown)}"
            )

        # Lowercase the deny-lists once so matching stays case-insensitive
        for key in ("invalid_name_terms", "generic_name_tokens"):
            if key in data:
                data[key] = [str(term).strip().lower() for term in data[key] or []]
        if "confidence_aliases" in data:
            data["confidence_aliases"] = {
                str(k).strip().lower(): str(v).strip().lower()
                for k, v in (data["confidence_aliases"] or {}).items()
            }

        return ExtractionSettings(**data)


def load_settings(yaml_path: Optional[str] = None) -> ExtractionSettings:
    """Load settings from an optional YAML file, then apply env overrides."""
    if yaml_path:
        settings = ExtractionSettingsLoader(yaml_path).load()
    else:
        settings = ExtractionSettings()
    return settings.apply_env()


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler for entry points (CLI, API)."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
