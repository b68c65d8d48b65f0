import json
import logging
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class StoreConfig:
	"""Configuration for a media store."""
	upload_dir: Path = field(default_factory=lambda: Path.cwd() / "uploads")
	thumbnail_dirname: str = "thumbnails"  # Reserved, never listed as a folder
	thumbnail_size: Tuple[int, int] = (300, 300)
	thumbnail_quality: int = 80
	fetch_timeout: float = 30.0
	max_fetch_size: Optional[int] = 100 * 1024 * 1024  # None disables the limit
	ffmpeg_binary: str = "ffmpeg"

	def __post_init__(self):
		self.upload_dir = Path(self.upload_dir).resolve()
		self.thumbnail_size = tuple(self.thumbnail_size)

	@property
	def thumbnail_dir(self) -> Path:
		return self.upload_dir / self.thumbnail_dirname

	def to_dict(self) -> dict:
		data = asdict(self)
		data["upload_dir"] = str(self.upload_dir)
		data["thumbnail_size"] = list(self.thumbnail_size)
		return data

	@classmethod
	def from_dict(cls, data: dict) -> 'StoreConfig':
		# Only use known fields
		known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
		return cls(**known)

	def save(self, path: Path):
		"""Save config to JSON file."""
		path.parent.mkdir(parents=True, exist_ok=True)
		with open(path, 'w', encoding='utf-8') as f:
			json.dump(self.to_dict(), f, indent=2)
		logger.debug(f"Saved store config to {path}")

	@classmethod
	def load(cls, path: Path) -> 'StoreConfig':
		"""Load config from JSON file, or return defaults if not found."""
		if not path.exists():
			logger.debug(f"No config found at {path}, using defaults")
			return cls()

		try:
			with open(path, 'r', encoding='utf-8') as f:
				data = json.load(f)
			return cls.from_dict(data)
		except (json.JSONDecodeError, IOError, TypeError) as e:
			logger.warning(f"Failed to load config: {e}, using defaults")
			return cls()

	def validate(self) -> bool:
		"""Validate config consistency."""
		if not self.thumbnail_dirname or "/" in self.thumbnail_dirname:
			logger.error("Thumbnail directory must be a single path segment")
			return False
		if min(self.thumbnail_size) <= 0:
			logger.error("Thumbnail size must be positive")
			return False
		if self.fetch_timeout <= 0:
			logger.error("Fetch timeout must be positive")
			return False
		if self.max_fetch_size is not None and self.max_fetch_size <= 0:
			logger.error("Max fetch size must be positive")
			return False
		return True
