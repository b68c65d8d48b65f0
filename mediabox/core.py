import os
import io
import time
import uuid
import shutil
import logging
import zipfile
from pathlib import Path
from typing import Optional, List, IO

from . import paths
from .config import StoreConfig
from .errors import InvalidInputError, NotFoundError
from .index import FileIndex
from .media import MediaProcessor
from .models import FileRecord, FolderInfo, NewFile
from .mutator import PathMutator
from .pins import PinVault
from .remote import RemoteFetcher
from .search import Search
from .tree import FolderTreeBuilder

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
	# Images
	"image/jpeg", "image/jpg", "image/png", "image/webp", "image/gif", "image/svg+xml",
	# Videos
	"video/mp4", "video/webm", "video/ogg", "video/avi", "video/mov", "video/quicktime",
	# Text
	"text/plain", "text/csv", "text/javascript", "text/css", "text/html", "text/xml",
	"application/json", "application/javascript", "application/xml", "application/csv",
}

# MIME types from browsers are unreliable for source files, so extensions count too
ALLOWED_EXTENSIONS = {
	".jpg", ".jpeg", ".png", ".webp", ".gif", ".svg",
	".mp4", ".webm", ".ogg", ".avi", ".mov",
	".txt", ".csv", ".js", ".css", ".html", ".xml", ".json",
	".md", ".py", ".java", ".cpp", ".c", ".h", ".php", ".rb",
	".go", ".rs", ".ts", ".tsx", ".jsx", ".vue", ".yml", ".yaml",
}

STAGING_DIRNAME = ".incoming"


class MediaStore:
	def __init__(self, config: Optional[StoreConfig] = None):
		"""
		Wire up the store for one serving context.
		:param config: Store configuration; defaults to ./uploads.
		"""
		self.config = config or StoreConfig()
		self.root = self.config.upload_dir
		self.thumbnail_dir = self.config.thumbnail_dir
		self.staging_dir = self.thumbnail_dir / STAGING_DIRNAME

		self._initialize_structure()

		reserved = self.config.thumbnail_dirname
		self.index = FileIndex()
		self.pins = PinVault()
		self.tree = FolderTreeBuilder(self.index, self.pins, self.root, reserved=reserved)
		self.mutator = PathMutator(self.index, self.pins, self.root, reserved=reserved)
		self.search = Search(self.index, self.tree)
		self.media = MediaProcessor(
			self.thumbnail_dir,
			size=self.config.thumbnail_size,
			quality=self.config.thumbnail_quality,
			ffmpeg_binary=self.config.ffmpeg_binary,
		)
		self.fetcher = RemoteFetcher(
			timeout=self.config.fetch_timeout,
			max_bytes=self.config.max_fetch_size,
			temp_dir=str(self.staging_dir),
		)

	def _initialize_structure(self):
		"""Creates the upload and thumbnail directories if they don't exist."""
		os.makedirs(self.root, exist_ok=True)
		os.makedirs(self.thumbnail_dir, exist_ok=True)
		os.makedirs(self.staging_dir, exist_ok=True)

		# Clean stale uploads from previous runs
		for tmp_file in self.staging_dir.glob("*"):
			try:
				os.remove(tmp_file)
			except OSError:
				pass

		logger.info(f"Initialized media store at {self.root}")

	def close(self):
		self.fetcher.session.close()

	# --- Helpers ---

	@staticmethod
	def is_allowed(mime_type: str, filename: str) -> bool:
		ext = Path(filename).suffix.lower()
		return (mime_type or "").lower() in ALLOWED_MIME_TYPES or ext in ALLOWED_EXTENSIONS

	@staticmethod
	def unique_name(original_name: str) -> str:
		"""On-disk name: millisecond timestamp, random tag, original extension."""
		ext = Path(original_name).suffix
		return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}{ext}"

	def resolve_upload_folder(self, original_name: str, folder_hint: Optional[str]) -> str:
		"""
		Work out the destination folder for an upload.
		Directory uploads send the browser's relative path ("trip/day1/a.jpg");
		everything else sends the folder currently open in the client.
		"""
		if not folder_hint:
			return ""
		hint = folder_hint.replace("\\", "/")
		if original_name and "/" in hint and hint.endswith("/" + original_name):
			hint = os.path.dirname(hint)
		if not paths.split(hint):
			return ""
		folder = paths.sanitize(hint)
		if paths.split(folder)[0] == self.config.thumbnail_dirname:
			raise InvalidInputError(f"'{self.config.thumbnail_dirname}' is a reserved folder name")
		return folder

	def _commit(self, staged: str, original_name: str, mime_type: str, size: int,
				folder_path: str, thumbnail_path: Optional[str]) -> FileRecord:
		"""Move a staged upload into its folder and register it."""
		name = self.unique_name(original_name)

		with self.mutator.lock:
			target_dir = self.mutator.physical_path(folder_path)
			final_path = target_dir / name
			try:
				target_dir.mkdir(parents=True, exist_ok=True)
				shutil.move(staged, final_path)
			except OSError as e:
				logger.error(f"Could not move {original_name} into '{folder_path or '/'}': {e}")
				if thumbnail_path and os.path.exists(thumbnail_path):
					os.remove(thumbnail_path)
				raise

			record = self.index.create(NewFile(
				name=name,
				original_name=original_name,
				path=str(final_path),
				size=size,
				mime_type=mime_type,
				thumbnail_path=thumbnail_path,
				folder_path=folder_path or None,
			))

		logger.info(f"Stored {original_name} in '{folder_path or '/'}' ({size} bytes)")
		return record

	# --- Ingestion ---

	def ingest_stream(self, stream: IO[bytes], original_name: str, mime_type: str,
					folder_hint: Optional[str] = None) -> FileRecord:
		"""Store an uploaded stream. Videos get a thumbnail when ffmpeg cooperates."""
		original_name = os.path.basename((original_name or "").replace("\\", "/")).strip()
		if not original_name:
			raise InvalidInputError("No filename")
		if not self.is_allowed(mime_type, original_name):
			raise InvalidInputError("Invalid file type. Only images, videos, and text files are allowed.")

		folder_path = self.resolve_upload_folder(original_name, folder_hint)
		mime_type = mime_type or "application/octet-stream"

		staged = self.staging_dir / self.unique_name(original_name)
		try:
			with open(staged, 'wb') as f:
				shutil.copyfileobj(stream, f, 65536)
			size = staged.stat().st_size
		except Exception as e:
			logger.error(f"Stream interrupted for {original_name}: {e}")
			staged.unlink(missing_ok=True)
			raise

		thumbnail_path = None
		if mime_type.startswith("video/"):
			thumbnail_path = self.media.make_thumbnail(staged, mime_type)

		try:
			return self._commit(str(staged), original_name, mime_type, size, folder_path, thumbnail_path)
		finally:
			staged.unlink(missing_ok=True)

	def ingest_url(self, url: str, folder_path: Optional[str] = None) -> FileRecord:
		"""Download a remote image or video into a folder."""
		folder = self.resolve_upload_folder("", folder_path)
		fetched = self.fetcher.fetch(url)

		try:
			thumbnail_path = self.media.make_thumbnail(fetched.temp_path, fetched.content_type)
			return self._commit(fetched.temp_path, fetched.filename, fetched.content_type,
							fetched.size, folder, thumbnail_path)
		finally:
			fetched.discard()

	# --- Single files ---
	# Taken under the mutation lock so a folder rename cannot write back a stale copy

	def delete_file(self, file_id: str) -> bool:
		with self.mutator.lock:
			return self.index.delete(file_id)

	def rename_file(self, file_id: str, new_base_name: str) -> Optional[FileRecord]:
		with self.mutator.lock:
			return self.index.rename_record(file_id, new_base_name)

	# --- Reads ---

	def folders(self) -> List[FolderInfo]:
		return self.tree.build()

	def folder(self, folder_path: str) -> Optional[FolderInfo]:
		return self.tree.find(paths.normalize(folder_path))

	def files_in_folder(self, folder_path: str) -> List[FileRecord]:
		return self.index.in_folder(paths.normalize(folder_path))

	# --- Archive ---

	def zip_folder(self, folder_path: str) -> io.BytesIO:
		"""
		Zip the files directly inside a folder, named as the user knows them.
		Files missing on disk are skipped.
		"""
		folder = self.folder(folder_path)
		if folder is None:
			raise NotFoundError(f"Folder not found: {folder_path}")
		if not folder.files:
			raise InvalidInputError("No files to download in this folder")

		buffer = io.BytesIO()
		used = set()
		with zipfile.ZipFile(buffer, 'w', compression=zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
			for record in folder.files:
				if not os.path.exists(record.path):
					logger.warning(f"Skipping missing file {record.path}")
					continue
				zf.write(record.path, arcname=self._archive_name(record.original_name, used))

		buffer.seek(0)
		return buffer

	@staticmethod
	def _archive_name(original_name: str, used: set) -> str:
		stem, ext = os.path.splitext(original_name)
		candidate = original_name
		n = 1
		while candidate in used:
			candidate = f"{stem} ({n}){ext}"
			n += 1
		used.add(candidate)
		return candidate
