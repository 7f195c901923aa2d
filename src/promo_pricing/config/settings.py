"""
Centralized settings and path configuration for the pricing service.
"""
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional


ROOT_ENV = 'PROMO_PRICING_ROOT'
CACHE_TTL_ENV = 'PROMO_PRICING_CACHE_TTL'
LOG_LEVEL_ENV = 'PROMO_PRICING_LOG_LEVEL'


def get_project_root() -> Path:
    """Get the project root directory (where the data/ folder or pyproject.toml lives)."""
    env_root = os.environ.get(ROOT_ENV)
    if env_root:
        return Path(env_root).resolve()

    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'data' / 'promotions.csv').exists() or (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 4 levels up from this file (src/promo_pricing/config/settings.py)
    return Path(__file__).resolve().parent.parent.parent.parent


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path

    # Promotion authoring and compiled output
    promotions_csv: Path
    compiled_promotions: Path

    # Catalog inputs
    products_file: Path
    blueprints_file: Path

    # Catalog build report
    catalog_report: Path

    # Promotion list memoization
    cache_ttl_seconds: float = 60.0
    cache_max_entries: int = 256

    log_level: str = 'INFO'

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and environment."""
        root = Path(project_root) if project_root else get_project_root()
        data_dir = root / 'data'

        cache_ttl = 60.0
        if os.environ.get(CACHE_TTL_ENV):
            try:
                cache_ttl = float(os.environ[CACHE_TTL_ENV])
            except ValueError:
                cache_ttl = 60.0

        return cls(
            project_root=root,
            promotions_csv=data_dir / 'promotions.csv',
            compiled_promotions=data_dir / 'compiled_promotions.json',
            products_file=data_dir / 'products.csv',
            blueprints_file=data_dir / 'blueprints.json',
            catalog_report=data_dir / 'outputs' / 'catalog_report.json',
            cache_ttl_seconds=cache_ttl,
            log_level=os.environ.get(LOG_LEVEL_ENV, 'INFO').upper(),
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
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
