from __future__ import annotations

import sys
from pathlib import Path


def is_frozen() -> bool:
    return bool(getattr(sys, "frozen", False))


def base_path() -> Path:
    """Return the base path for bundled resources (assets) depending on runtime.

    - In PyInstaller onefile, resources are extracted to sys._MEIPASS.
    - In dev, use the project root (…/quoteforge's parent).
    """
    if is_frozen():
        meipass = getattr(sys, "_MEIPASS", None)
        if meipass:
            return Path(meipass)
    return Path(__file__).resolve().parents[2]


def resource_path(rel: str | Path) -> Path:
    """Resolve a resource path (e.g., 'assets/fonts/NotoSans-Regular.ttf') for current runtime."""
    return base_path() / Path(rel)


def user_writable_dir() -> Path:
    """Directory for user-writable files (settings.json, quoteforge.db).

    A frozen build writes next to the executable; otherwise a dot-folder in the home directory.
    """
    if is_frozen():
        return Path(sys.executable).resolve().parent
    return Path.home() / ".quoteforge"


def settings_path() -> Path:
    return user_writable_dir() / "settings.json"


def default_db_path() -> Path:
    return user_writable_dir() / "quoteforge.db"


def default_export_dir() -> Path:
    return Path.home() / "Documents" / "Devis"
