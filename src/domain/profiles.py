from __future__ import annotations

import logging
import os
from pathlib import Path

import tomlkit

from domain.settings import TileLoadSettings

logger = logging.getLogger(__name__)


def _user_profiles_dir() -> Path:
    """
    Determine profiles directory.

    1) If <project_root>/configs/profiles exists, use it (run-from-repo setups).
    2) Otherwise fall back to $XDG_CONFIG_HOME/building-tiles/profiles
       or ~/.config/building-tiles/profiles.
    """
    project_root = Path(__file__).resolve().parent.parent.parent
    local_profiles = project_root / 'configs' / 'profiles'
    if local_profiles.exists():
        return local_profiles

    return (
        Path(os.getenv('XDG_CONFIG_HOME') or (Path.home() / '.config'))
        / 'building-tiles'
        / 'profiles'
    )


def ensure_profiles_dir() -> Path:
    profiles_dir = _user_profiles_dir()
    profiles_dir.mkdir(parents=True, exist_ok=True)
    return profiles_dir


def list_profiles() -> list[str]:
    """Profile names without extension."""
    folder = ensure_profiles_dir()
    return sorted(p.stem for p in folder.glob('*.toml') if p.is_file())


def profile_path(name: str) -> Path:
    return ensure_profiles_dir() / f'{name}.toml'


def _resolve(name_or_path: str | Path) -> Path:
    p = Path(name_or_path)
    if p.suffix.lower() == '.toml':
        return p
    return profile_path(str(name_or_path))


def load_settings(name_or_path: str | Path) -> TileLoadSettings:
    """
    Load and validate a TOML profile into TileLoadSettings.

    Accepts either a profile name from the profiles directory or a path to a
    ``.toml`` file. Keys may live at the top level or inside a ``[tiles]``
    table; unknown keys are ignored.
    """
    path = _resolve(name_or_path)
    if not path.exists():
        msg = f'Profile not found: {path}'
        raise FileNotFoundError(msg)
    data = tomlkit.parse(path.read_text(encoding='utf-8')).unwrap()
    section = data.pop('tiles', None)
    if isinstance(section, dict):
        data.update(section)
    settings = TileLoadSettings.model_validate(data)
    logger.info(
        'Profile %s loaded: tile_size=%s min_zoom_height=%s max_concurrent_loads=%s',
        path,
        settings.tile_size,
        settings.min_zoom_height,
        settings.max_concurrent_loads,
    )
    return settings


def save_settings(name_or_path: str | Path, settings: TileLoadSettings) -> Path:
    """Write settings as a ``[tiles]`` table; returns the file path."""
    path = _resolve(name_or_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    doc = tomlkit.document()
    table = tomlkit.table()
    for key, value in settings.model_dump().items():
        table.add(key, value)
    doc.add('tiles', table)
    path.write_text(tomlkit.dumps(doc), encoding='utf-8')
    return path
