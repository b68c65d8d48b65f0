import os
import logging
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional, Set

from . import paths
from .index import FileIndex, newest_first
from .models import FolderInfo
from .pins import PinVault

logger = logging.getLogger(__name__)


class FolderTreeBuilder:
	"""
	Derives the folder hierarchy from the file index plus a scan of the
	upload directory. Nothing is cached: every call reflects the current
	index and disk, so a half-finished mutation heals on the next read.
	"""

	def __init__(self, index: FileIndex, pins: PinVault, upload_dir: Path, reserved: str = "thumbnails"):
		self.index = index
		self.pins = pins
		self.upload_dir = Path(upload_dir)
		self.reserved = reserved

	# --- Path sources ---

	def _record_buckets(self) -> Dict[str, list]:
		buckets = defaultdict(list)
		for record in self.index.list():
			if record.folder_path:
				buckets[paths.join(record.folder_path)].append(record)
		return buckets

	def scan_directories(self) -> Set[str]:
		"""Every directory below the upload root, as folder paths."""
		found: Set[str] = set()
		try:
			entries = list(os.scandir(self.upload_dir))
		except OSError as e:
			logger.warning(f"Error scanning upload directory {self.upload_dir}: {e}")
			return found

		for entry in entries:
			if entry.name == self.reserved:
				continue
			if self._is_dir(entry):
				found.add(entry.name)
				self._scan_subfolders(Path(entry.path), entry.name, found)
		return found

	def _scan_subfolders(self, dir_path: Path, relative: str, found: Set[str]):
		try:
			entries = list(os.scandir(dir_path))
		except OSError as e:
			logger.warning(f"Error scanning subfolder {dir_path}: {e}")
			return

		for entry in entries:
			if self._is_dir(entry):
				child = f"{relative}/{entry.name}"
				found.add(child)
				self._scan_subfolders(Path(entry.path), child, found)

	@staticmethod
	def _is_dir(entry: os.DirEntry) -> bool:
		try:
			# Symlinked directories could loop back onto the upload root
			return entry.is_dir(follow_symlinks=False)
		except OSError:
			return False

	# --- Tree construction ---

	def folder_map(self) -> Dict[str, FolderInfo]:
		"""Flat path -> FolderInfo map with parents linked to children."""
		buckets = self._record_buckets()

		all_paths: Set[str] = set()
		for folder_path in buckets:
			all_paths.update(paths.ancestors(folder_path))
		all_paths.update(self.scan_directories())

		folders: Dict[str, FolderInfo] = {}
		for folder_path in all_paths:
			folders[folder_path] = FolderInfo(
				name=paths.name_of(folder_path),
				path=folder_path,
				parent_path=paths.parent_of(folder_path),
				files=newest_first(buckets.get(folder_path, [])),
				has_pin=self.pins.is_locked(folder_path),
			)

		for folder in folders.values():
			parent = folders.get(folder.parent_path) if folder.parent_path else None
			if parent is not None:
				parent.subfolders.append(folder)
				parent.subfolder_count += 1

		for folder in folders.values():
			folder.subfolders.sort(key=lambda f: (f.name.lower(), f.name))

		return folders

	def build(self) -> List[FolderInfo]:
		"""Top-level folders, each carrying its subtree."""
		folders = self.folder_map()
		roots = [
			folder for folder in folders.values()
			if not folder.parent_path or folder.parent_path not in folders
		]
		return sorted(roots, key=lambda f: (f.name.lower(), f.name))

	def find(self, folder_path: str) -> Optional[FolderInfo]:
		return self.folder_map().get(paths.join(folder_path))

	def exists(self, folder_path: str) -> bool:
		return self.find(folder_path) is not None
