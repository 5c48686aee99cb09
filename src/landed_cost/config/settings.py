"""
Centralized settings and path configuration for the landed cost estimator.
"""
import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional


DEFAULT_PRODUCTS = (
    'Basmati Rice',
    'Finger Millet',
    'Red Lentils',
    'Sunflower Oil',
    'Black Gram',
)

DESTINATIONS = (
    'United States',
    'United Kingdom',
    'Germany',
    'Japan',
    'Canada',
    'Australia',
    'Netherlands',
    'France',
    'Italy',
    'Spain',
)

ESTIMATE_STATUSES = ('draft', 'completed', 'archived')

USER_ROLES = ('admin', 'ops_analyst')


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    # Walk up from this file to find the project root
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 3 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path

    # Estimate store file; None keeps estimates in memory only
    estimates_file: Optional[Path] = None

    log_level: str = 'INFO'

    # Form defaults (percent)
    default_margin: float = 15.0
    distributor_margin: float = 12.0
    retailer_margin: float = 20.0

    products: tuple = field(default=DEFAULT_PRODUCTS)

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and environment."""
        root = project_root or get_project_root()

        data_file = os.environ.get('LANDED_COST_DATA_FILE')
        if data_file is None:
            estimates_file = root / 'data' / 'estimates.json'
        elif data_file.strip() == '':
            estimates_file = None
        else:
            estimates_file = Path(data_file)

        return cls(
            project_root=root,
            estimates_file=estimates_file,
            log_level=os.environ.get('LANDED_COST_LOG_LEVEL', 'INFO').upper(),
            default_margin=_env_float('LANDED_COST_DEFAULT_MARGIN', 15.0),
            distributor_margin=_env_float('LANDED_COST_DISTRIBUTOR_MARGIN', 12.0),
            retailer_margin=_env_float('LANDED_COST_RETAILER_MARGIN', 20.0),
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reset_settings():
    """Drop the cached settings so the next get_settings() reloads."""
    global _settings
    _settings = None
