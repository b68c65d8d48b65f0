import os
import shutil
import logging
import threading
import dataclasses
from pathlib import Path
from typing import Optional

from . import paths
from .errors import InvalidInputError, StorageError
from .index import FileIndex
from .pins import PinVault

logger = logging.getLogger(__name__)


class PathMutator:
	"""
	Structural folder operations. Keeps three things in step: the physical
	directories under the upload root, the folder_path/path of every record
	in the index, and the PIN entries.

	Every operation holds the same mutation lock, so a rename and a delete
	touching overlapping subtrees cannot interleave.
	"""

	def __init__(self, index: FileIndex, pins: PinVault, upload_dir: Path,
				reserved: str = "thumbnails", lock: Optional[threading.RLock] = None):
		self.index = index
		self.pins = pins
		self.upload_dir = Path(upload_dir)
		self.reserved = reserved
		self.lock = lock or threading.RLock()

	def physical_path(self, folder_path: str) -> Path:
		return self.upload_dir.joinpath(*paths.split(folder_path))

	def _check_reserved(self, folder_path: str):
		parts = paths.split(folder_path)
		if parts and parts[0] == self.reserved:
			raise InvalidInputError(f"'{self.reserved}' is a reserved folder name")

	def _existing_folder(self, folder_path: str) -> str:
		folder_path = paths.normalize(folder_path)
		if not folder_path:
			raise InvalidInputError("The root folder cannot be modified")
		self._check_reserved(folder_path)
		return folder_path

	# --- Create ---

	def create_folder(self, folder_path: str) -> str:
		"""
		Create a folder (and any missing parents) on disk.
		Succeeds if it already exists. Returns the sanitized path.
		"""
		clean = paths.sanitize(folder_path)
		self._check_reserved(clean)

		with self.lock:
			target = self.physical_path(clean)
			try:
				target.mkdir(parents=True, exist_ok=True)
			except OSError as e:
				logger.error(f"Error creating folder {target}: {e}")
				raise StorageError(f"Could not create folder '{clean}': {e}") from e

		logger.info(f"Created folder '{clean}'")
		return clean

	# --- Delete ---

	def delete_folder(self, folder_path: str) -> bool:
		"""
		Delete a folder, every record in it or below it, and its directory tree.
		A failed directory removal is logged; the index side still completes.
		"""
		folder_path = self._existing_folder(folder_path)

		with self.lock:
			doomed = self.index.under(folder_path)
			for record in doomed:
				self.index.delete(record.id)

			target = self.physical_path(folder_path)
			try:
				if target.exists():
					shutil.rmtree(target)
			except OSError as e:
				logger.error(f"Error deleting physical folder {target}: {e}")

			dropped_pins = self.pins.discard_under(folder_path)

		logger.info(f"Deleted folder '{folder_path}' ({len(doomed)} files, {dropped_pins} PINs)")
		return True

	def delete_all_images(self, folder_path: str) -> int:
		"""Delete the images directly inside a folder. Other files stay."""
		folder_path = paths.normalize(folder_path)
		self._check_reserved(folder_path)

		with self.lock:
			images = [r for r in self.index.in_folder(folder_path) if r.is_image]
			deleted = sum(1 for record in images if self.index.delete(record.id))

		logger.info(f"Deleted {deleted} images from '{folder_path}'")
		return deleted

	# --- Rename ---

	def rename_folder(self, folder_path: str, new_name: str) -> bool:
		"""
		Rename the last segment of a folder path.
		Returns False, changing nothing, when the folder is missing on disk
		or the destination already exists.
		"""
		old_path = self._existing_folder(folder_path)
		new_segment = paths.sanitize_segment(new_name or "")
		if not new_segment or new_segment in paths.RESERVED_SEGMENTS:
			raise InvalidInputError("Invalid folder name")

		new_path = paths.join(paths.parent_of(old_path) or "", new_segment)
		self._check_reserved(new_path)

		with self.lock:
			old_dir = self.physical_path(old_path)
			new_dir = self.physical_path(new_path)

			if not old_dir.is_dir():
				logger.warning(f"Rename failed, folder '{old_path}' does not exist")
				return False
			if new_dir.exists():
				logger.warning(f"Rename failed, '{new_path}' already exists")
				return False

			try:
				os.rename(old_dir, new_dir)
			except OSError as e:
				logger.error(f"Error renaming {old_dir} -> {new_dir}: {e}")
				return False

			moved = 0
			for record in self.index.under(old_path):
				new_folder = paths.rebase(record.folder_path, old_path, new_path)
				self.index.replace(dataclasses.replace(
					record,
					folder_path=new_folder,
					path=self._rebase_file(record.path, old_dir, new_dir, new_folder, record.name),
				))
				moved += 1

			self.pins.move(old_path, new_path)

		logger.info(f"Renamed folder '{old_path}' -> '{new_path}' ({moved} files)")
		return True

	def _rebase_file(self, file_path: str, old_dir: Path, new_dir: Path,
					new_folder: str, name: str) -> str:
		# relative_to compares whole path components, never substrings
		try:
			relative = Path(file_path).relative_to(old_dir)
		except ValueError:
			logger.warning(f"{file_path} was not under {old_dir}, rebuilding its path")
			return str(self.physical_path(new_folder) / name)
		return str(new_dir / relative)
