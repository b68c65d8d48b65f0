from dataclasses import dataclass, field
from pathlib import Path
import os
import logging

from mediabox.config import StoreConfig

logger = logging.getLogger(__name__)


@dataclass
class ServerConfig:
	"""Configuration for the mediabox web server."""
	host: str = "127.0.0.1"
	port: int = 5000
	debug: bool = False
	secret_key: str = field(default_factory=lambda: os.urandom(24).hex())
	upload_dir: Path = None
	max_upload_size: int = 100 * 1024 * 1024  # 100MB
	store_config_file: Path = None  # Optional JSON overrides for StoreConfig

	def __post_init__(self):
		if self.upload_dir is None:
			self.upload_dir = Path.cwd() / "uploads"
		elif isinstance(self.upload_dir, str):
			self.upload_dir = Path(self.upload_dir)

		self.upload_dir = self.upload_dir.resolve()

		if isinstance(self.store_config_file, str):
			self.store_config_file = Path(self.store_config_file)

	@classmethod
	def from_env(cls, **overrides) -> 'ServerConfig':
		"""Build a config from MEDIABOX_* environment variables; explicit overrides win."""
		values = {}
		if os.environ.get("MEDIABOX_HOST"):
			values["host"] = os.environ["MEDIABOX_HOST"]
		if os.environ.get("MEDIABOX_PORT"):
			try:
				values["port"] = int(os.environ["MEDIABOX_PORT"])
			except ValueError:
				logger.warning(f"Ignoring invalid MEDIABOX_PORT: {os.environ['MEDIABOX_PORT']!r}")
		if os.environ.get("MEDIABOX_UPLOAD_DIR"):
			values["upload_dir"] = os.environ["MEDIABOX_UPLOAD_DIR"]
		if os.environ.get("MEDIABOX_SECRET_KEY"):
			values["secret_key"] = os.environ["MEDIABOX_SECRET_KEY"]
		if os.environ.get("MEDIABOX_STORE_CONFIG"):
			values["store_config_file"] = os.environ["MEDIABOX_STORE_CONFIG"]

		values.update({k: v for k, v in overrides.items() if v is not None})
		return cls(**values)

	def store_config(self) -> StoreConfig:
		"""The StoreConfig for this server. Upload dir and download cap always come from here."""
		if self.store_config_file:
			config = StoreConfig.load(self.store_config_file)
		else:
			config = StoreConfig()
		config.upload_dir = self.upload_dir
		config.max_fetch_size = self.max_upload_size

		if not config.validate():
			logger.warning("Store config failed validation, using defaults")
			config = StoreConfig(upload_dir=self.upload_dir, max_fetch_size=self.max_upload_size)
		return config
