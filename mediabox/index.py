import os
import uuid
import logging
import threading
import dataclasses
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, List

from . import paths
from .errors import InvalidInputError
from .models import FileRecord, NewFile

logger = logging.getLogger(__name__)


def newest_first(records) -> List[FileRecord]:
	return sorted(records, key=lambda r: r.created_at, reverse=True)


class FileIndex:
	"""
	In-memory id -> FileRecord map. This is the only metadata store;
	folders are derived from it, never kept separately.
	"""

	def __init__(self):
		self._records: Dict[str, FileRecord] = {}
		self._lock = threading.RLock()

	def __len__(self) -> int:
		return len(self._records)

	def __contains__(self, file_id: str) -> bool:
		return file_id in self._records

	def create(self, new_file: NewFile) -> FileRecord:
		"""Register a stored file. Returns the record with its fresh id."""
		new_file.validate()
		record = FileRecord(
			id=str(uuid.uuid4()),
			name=new_file.name,
			original_name=new_file.original_name,
			path=new_file.path,
			size=new_file.size,
			mime_type=new_file.mime_type,
			thumbnail_path=new_file.thumbnail_path,
			folder_path=paths.join(new_file.folder_path or "") or None,
			created_at=datetime.now(timezone.utc),
		)
		with self._lock:
			self._records[record.id] = record
		logger.debug(f"Indexed {record.original_name} as {record.id}")
		return record

	def get(self, file_id: str) -> Optional[FileRecord]:
		return self._records.get(file_id)

	def list(self) -> List[FileRecord]:
		with self._lock:
			return newest_first(self._records.values())

	def in_folder(self, folder_path: Optional[str]) -> List[FileRecord]:
		"""Records directly inside `folder_path` (root when empty)."""
		target = paths.join(folder_path or "")
		with self._lock:
			return newest_first(
				r for r in self._records.values() if (r.folder_path or "") == target
			)

	def under(self, folder_path: str) -> List[FileRecord]:
		"""Records in `folder_path` or any folder nested below it."""
		with self._lock:
			return newest_first(
				r for r in self._records.values()
				if r.folder_path and paths.is_within(r.folder_path, folder_path)
			)

	def replace(self, record: FileRecord):
		with self._lock:
			self._records[record.id] = record

	def delete(self, file_id: str) -> bool:
		"""
		Drop a record and unlink its file and thumbnail.
		Disk errors are logged; the record is removed regardless.
		"""
		with self._lock:
			record = self._records.pop(file_id, None)
		if record is None:
			return False

		for target in (record.path, record.thumbnail_path):
			if not target:
				continue
			try:
				if os.path.exists(target):
					os.remove(target)
			except OSError as e:
				logger.error(f"Error deleting {target} for {file_id}: {e}")

		logger.info(f"Deleted file {record.original_name} ({file_id})")
		return True

	def rename_record(self, file_id: str, new_base_name: str) -> Optional[FileRecord]:
		"""Set a new display name, keeping the original extension."""
		new_base_name = (new_base_name or "").strip()
		if not new_base_name:
			raise InvalidInputError("File name is required")

		with self._lock:
			record = self._records.get(file_id)
			if record is None:
				return None
			ext = Path(record.original_name).suffix
			updated = dataclasses.replace(record, original_name=new_base_name + ext)
			self._records[file_id] = updated
		logger.info(f"Renamed {record.original_name} -> {updated.original_name}")
		return updated
