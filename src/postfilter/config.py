"""
Configuration management for postfilter.

Handles loading and saving of the settings YAML file and validates
classification settings once, at the boundary.
"""

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from postfilter.constants import DEFAULT_MODEL, DEFAULT_SENSITIVITY, SENSITIVITY_PROFILES


logger = logging.getLogger(__name__)


@dataclass
class CategoryConfig:
    """Per-category switch plus the text the rich classifier sees."""
    enabled: bool = False
    label: Optional[str] = None
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"enabled": self.enabled}
        if self.label is not None:
            data["label"] = self.label
        if self.description:
            data["description"] = self.description
        return data


DEFAULT_CATEGORIES: Dict[str, CategoryConfig] = {
    "ai_generated": CategoryConfig(
        enabled=True,
        label="AI-Generated",
        description="Posts that read as AI-written: formulaic structure, buzzword-heavy, generic advice",
    ),
    "thought_leadership": CategoryConfig(
        enabled=True,
        label="Thought Leadership",
        description='Schematic "thought leadership": motivational platitudes, humble brags dressed as insights, LinkedIn-speak',
    ),
    "engagement_bait": CategoryConfig(
        enabled=True,
        label="Engagement Bait",
        description='Polls with obvious answers, "Agree?", ragebait, manufactured controversy for clicks',
    ),
    "self_promotion": CategoryConfig(
        enabled=False,
        label="Self-Promotion",
        description='Thinly-veiled product plugs, "excited to announce" humble brags, constant self-congratulation',
    ),
    "politics": CategoryConfig(
        enabled=False,
        label="Politics",
        description="Political commentary, partisan takes, government policy debates",
    ),
    "rage_bait": CategoryConfig(
        enabled=True,
        label="Rage Bait",
        description="Intentionally provocative or outrage-inducing hot takes",
    ),
    "corporate_fluff": CategoryConfig(
        enabled=False,
        label="Corporate Fluff",
        description='Empty corporate announcements, "thrilled to share" press releases',
    ),
}


# camelCase keys written by the browser settings screen
_KEY_ALIASES = {
    "customKeywords": "custom_keywords",
}


@dataclass
class Settings:
    """
    Classification settings.

    Every recognised option is listed here with its default.
    """
    enabled: bool = True
    sensitivity: str = DEFAULT_SENSITIVITY
    categories: Dict[str, CategoryConfig] = field(default_factory=dict)
    custom_keywords: List[str] = field(default_factory=list)
    model: str = DEFAULT_MODEL

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Settings":
        """
        Build settings from plain data.

        A missing categories block enables nothing. Unknown sensitivity
        values fall back to medium.

        Args:
            data: Settings mapping (snake_case or the original camelCase keys)

        Returns:
            Validated Settings

        Raises:
            ValueError: If the structure is malformed
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Settings must be a mapping, got {type(data).__name__}")

        data = {_KEY_ALIASES.get(key, key): value for key, value in data.items()}

        sensitivity = data.get("sensitivity", DEFAULT_SENSITIVITY)
        if not isinstance(sensitivity, str) or sensitivity not in SENSITIVITY_PROFILES:
            logger.warning("[CONFIG] Unknown sensitivity %r, using %s", sensitivity, DEFAULT_SENSITIVITY)
            sensitivity = DEFAULT_SENSITIVITY

        custom_keywords = data.get("custom_keywords") or []
        if not isinstance(custom_keywords, list) or not all(isinstance(k, str) for k in custom_keywords):
            raise ValueError("'custom_keywords' must be a list of strings")

        return cls(
            enabled=bool(data.get("enabled", True)),
            sensitivity=sensitivity,
            categories=_parse_categories(data.get("categories")),
            custom_keywords=list(custom_keywords),
            model=str(data.get("model") or DEFAULT_MODEL),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "sensitivity": self.sensitivity,
            "categories": {cid: c.to_dict() for cid, c in self.categories.items()},
            "custom_keywords": list(self.custom_keywords),
            "model": self.model,
        }

    def enabled_categories(self) -> Dict[str, CategoryConfig]:
        """Categories switched on, in configured order."""
        return {cid: c for cid, c in self.categories.items() if c.enabled}


def _parse_categories(raw: Any) -> Dict[str, CategoryConfig]:
    if raw is None:
        return {}

    if not isinstance(raw, Mapping):
        raise ValueError("'categories' must be a mapping of category id to settings")

    categories = {}
    for category_id, entry in raw.items():
        if isinstance(entry, CategoryConfig):
            categories[str(category_id)] = copy.copy(entry)
            continue

        if not isinstance(entry, Mapping):
            logger.warning("[CONFIG] Category '%s' is not a mapping, treating it as disabled", category_id)
            categories[str(category_id)] = CategoryConfig(enabled=False)
            continue

        label = entry.get("label")
        categories[str(category_id)] = CategoryConfig(
            enabled=bool(entry.get("enabled", False)),
            label=str(label) if label else None,
            description=str(entry.get("description") or ""),
        )

    return categories


def default_settings() -> Settings:
    """Fresh copy of the default settings."""
    return Settings(categories=copy.deepcopy(DEFAULT_CATEGORIES))


def coerce_settings(settings: Any) -> Settings:
    """
    Normalize a settings argument to a Settings object.

    None becomes settings with no category enabled.
    """
    if settings is None:
        return Settings()
    if isinstance(settings, Settings):
        return settings
    return Settings.from_dict(settings)


def load_settings(path: str) -> Settings:
    """
    Load settings from a YAML file.

    An empty file, or one without a categories block, gets the default
    categories.

    Args:
        path: Path to settings.yaml

    Returns:
        Validated Settings

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML parsing fails
        ValueError: If the structure is malformed
    """
    config_path = Path(path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not data:
        return default_settings()

    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")

    settings = Settings.from_dict(data)
    if "categories" not in data:
        settings.categories = copy.deepcopy(DEFAULT_CATEGORIES)

    return settings


def save_settings(path: str, settings: Settings) -> None:
    """
    Save settings to a YAML file.

    Note: This will overwrite the existing file and does not preserve
    comments.

    Args:
        path: Path to save settings.yaml
        settings: Settings to write
    """
    config_path = Path(path)

    # Ensure parent directory exists
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(settings.to_dict(), f, default_flow_style=False, allow_unicode=True, sort_keys=False)
