import os
import logging
import mimetypes
import tempfile
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse, unquote

import requests

from .errors import RemoteFetchError

logger = logging.getLogger(__name__)

ALLOWED_REMOTE_TYPES = (
	"image/jpeg", "image/jpg", "image/png", "image/webp", "image/gif", "image/svg+xml",
	"video/mp4", "video/webm", "video/ogg", "video/avi", "video/mov", "video/quicktime",
)


@dataclass
class FetchedFile:
	"""A download sitting in a temp file, waiting to be moved into place."""
	temp_path: str
	content_type: str
	filename: str
	size: int

	def discard(self):
		if os.path.exists(self.temp_path):
			os.remove(self.temp_path)


class RemoteFetcher:
	def __init__(self, timeout: float = 30.0, max_bytes: Optional[int] = None, temp_dir: Optional[str] = None):
		self.timeout = timeout
		self.temp_dir = temp_dir
		self.max_bytes = max_bytes
		self.session = requests.Session()

		# Plenty of image hosts refuse the default python-requests agent
		self.session.headers.update({
			"User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36"
		})

	@staticmethod
	def is_allowed(content_type: str) -> bool:
		return any(allowed in content_type for allowed in ALLOWED_REMOTE_TYPES)

	@staticmethod
	def filename_for(url: str, content_type: str) -> str:
		"""
		Name the download after the last URL path segment.
		Falls back to a timestamped name and guesses the extension
		from the content type when the URL has none.
		"""
		base = os.path.basename(unquote(urlparse(url).path)) or f"download-{int(time.time() * 1000)}"
		if os.path.splitext(base)[1]:
			return base
		ext = mimetypes.guess_extension(content_type.split(";")[0].strip())
		if not ext:
			ext = ".mp4" if "video" in content_type else ".jpg"
		return base + ext

	def fetch(self, url: str) -> FetchedFile:
		parsed = urlparse(url or "")
		if parsed.scheme not in ("http", "https") or not parsed.netloc:
			raise RemoteFetchError("Must be a valid URL")

		logger.info(f"Downloading: {url}")
		try:
			with self.session.get(url, stream=True, timeout=self.timeout) as r:
				r.raise_for_status()

				content_type = r.headers.get("Content-Type", "")
				if not self.is_allowed(content_type):
					raise RemoteFetchError(f"Invalid file type from URL: {content_type or 'unknown'}")

				filename = self.filename_for(url, content_type)
				size = 0
				tf = tempfile.NamedTemporaryFile(delete=False, dir=self.temp_dir, suffix=os.path.splitext(filename)[1])
				try:
					for chunk in r.iter_content(chunk_size=65536):
						size += len(chunk)
						if self.max_bytes and size > self.max_bytes:
							raise RemoteFetchError("Remote file is too large")
						tf.write(chunk)
				except BaseException:
					tf.close()
					os.remove(tf.name)
					raise
				tf.close()
		except requests.RequestException as e:
			logger.error(f"Request failed: GET {url} - {e}")
			raise RemoteFetchError(f"Failed to fetch file from URL: {e}") from e

		return FetchedFile(temp_path=tf.name, content_type=content_type.split(";")[0].strip(),
						filename=filename, size=size)
