from __future__ import annotations

from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Union
import json
import logging
import os

from quoteforge.core.paths import default_db_path, default_export_dir, settings_path

logger = logging.getLogger(__name__)

# Path to the settings.json (runtime-aware)
SETTINGS_PATH = settings_path()


@dataclass
class Settings:
	# Issuer mark drawn in the page header
	company_name: str = "QuoteForge"
	tagline: str = "Généré par QuoteForge - Solution de devis intelligent pour les professionnels"
	document_title: str = "DEVIS"
	currency_symbol: str = "€"
	default_tva_rate: float = 20.0
	# AI assistant; the key itself is read from the environment variable named here
	openai_model: str = "gpt-4o"
	openai_api_key_env: str = "OPENAI_API_KEY"
	openai_timeout: float = 30.0
	# Local store: one JSON array of quotes under this key
	storage_key: str = "quotes"
	db_path: Optional[str] = None
	# Where download_document writes when no directory is given; None -> Documents/Devis
	export_dir: Optional[str] = None
	# Template supports {id}, {client}, {date}
	file_name_template: str = "devis-{id}-{client}"

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "Settings":
		# Merge provided values over defaults, ignore unknown keys
		defaults = asdict(cls())
		merged: Dict[str, Any] = {**defaults, **{k: v for k, v in data.items() if k in defaults}}
		return cls(**merged)

	def to_dict(self) -> Dict[str, Any]:
		return asdict(self)

	def resolved_db_path(self) -> Path:
		return Path(self.db_path) if self.db_path else default_db_path()

	def resolved_export_dir(self) -> Path:
		return Path(self.export_dir) if self.export_dir else default_export_dir()

	def openai_api_key(self) -> Optional[str]:
		return os.environ.get(self.openai_api_key_env) or None


def _coerce_path(path: Optional[Union[str, Path]]) -> Path:
	return Path(path) if path is not None else SETTINGS_PATH


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
	"""
	Load settings from JSON (UTF-8). If the file is missing, write defaults and return them.
	"""
	p = _coerce_path(path)
	if not p.exists():
		settings = Settings()
		save_settings(settings, p)
		return settings

	try:
		with p.open("r", encoding="utf-8") as f:
			raw: Dict[str, Any] = json.load(f)
	except (json.JSONDecodeError, OSError) as e:
		# If unreadable/corrupt, fall back to defaults (do not overwrite automatically)
		logger.warning("Unreadable settings file %s (%s); using defaults", p, e)
		return Settings()

	return Settings.from_dict(raw if isinstance(raw, dict) else {})


def save_settings(settings: Settings, path: Optional[Union[str, Path]] = None) -> None:
	"""Save settings to JSON (UTF-8), creating parent dirs if needed."""
	p = _coerce_path(path)
	p.parent.mkdir(parents=True, exist_ok=True)
	tmp = p.with_suffix(p.suffix + ".tmp")
	with tmp.open("w", encoding="utf-8", newline="\n") as f:
		json.dump(settings.to_dict(), f, indent=2, ensure_ascii=False)
		f.write("\n")
	tmp.replace(p)
