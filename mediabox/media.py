import logging
import subprocess
import time
import uuid
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

# Pillow cannot rasterize vector images
SKIP_IMAGE_TYPES = {"image/svg+xml"}


class MediaProcessor:
	"""
	Generates preview images. Failures never propagate: the caller gets
	None and stores the file without a thumbnail.
	"""

	def __init__(self, thumbnail_dir: Path, size: Tuple[int, int] = (300, 300),
				quality: int = 80, ffmpeg_binary: str = "ffmpeg"):
		self.thumbnail_dir = Path(thumbnail_dir)
		self.size = tuple(size)
		self.quality = quality
		self.ffmpeg_binary = ffmpeg_binary

	def _target(self, source: Path) -> Path:
		self.thumbnail_dir.mkdir(parents=True, exist_ok=True)
		return self.thumbnail_dir / f"thumb_{source.stem}_{uuid.uuid4().hex[:6]}.jpg"

	def make_thumbnail(self, source, mime_type: str) -> Optional[str]:
		source = Path(source)
		if mime_type.startswith("video/"):
			return self.video_thumbnail(source)
		if mime_type.startswith("image/") and mime_type not in SKIP_IMAGE_TYPES:
			return self.image_thumbnail(source)
		return None

	def image_thumbnail(self, source: Path) -> Optional[str]:
		target = self._target(source)
		try:
			with Image.open(source) as img:
				img.thumbnail(self.size)
				if img.mode not in ("RGB", "L"):
					img = img.convert("RGB")
				img.save(target, format="JPEG", quality=self.quality)
		except (OSError, UnidentifiedImageError, ValueError) as e:
			logger.error(f"Thumbnail generation failed for {source.name}: {e}")
			target.unlink(missing_ok=True)
			return None

		logger.debug(f"Created image thumbnail {target.name}")
		return str(target)

	def video_thumbnail(self, source: Path) -> Optional[str]:
		target = self._target(source)
		cmd = [
			self.ffmpeg_binary, "-ss", "1", "-i", str(source),
			"-frames:v", "1",
			"-vf", f"scale={self.size[0]}:-2",
			"-y", str(target),
		]
		started = time.time()
		try:
			result = subprocess.run(cmd, capture_output=True, text=True)
		except OSError as e:
			logger.error(f"Could not run {self.ffmpeg_binary}: {e}")
			return None

		if result.returncode != 0 or not target.exists():
			logger.error(f"ffmpeg failed for {source.name}: {result.stderr.strip()[-300:]}")
			target.unlink(missing_ok=True)
			return None

		logger.debug(f"Created video thumbnail {target.name} in {time.time() - started:.2f}s")
		return str(target)
