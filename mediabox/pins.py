import re
import logging
import threading
from typing import Dict

from cryptography.hazmat.primitives import hashes, constant_time

from . import paths
from .errors import InvalidInputError

logger = logging.getLogger(__name__)

PIN_PATTERN = re.compile(r"[0-9]{4,8}")


class PinVault:
	"""
	Folder path -> SHA-256 digest of the folder PIN.
	Only digests are kept; the PIN itself is never stored.
	"""

	def __init__(self):
		self._pins: Dict[str, bytes] = {}
		self._lock = threading.Lock()

	@staticmethod
	def _digest(pin: str) -> bytes:
		digest = hashes.Hash(hashes.SHA256())
		digest.update(pin.encode('utf-8'))
		return digest.finalize()

	@staticmethod
	def validate(pin) -> str:
		if not isinstance(pin, str) or not PIN_PATTERN.fullmatch(pin):
			raise InvalidInputError("PIN must be 4-8 digits")
		return pin

	def set_pin(self, folder_path: str, pin: str):
		"""Store a PIN for the folder, replacing any previous one."""
		self.validate(pin)
		key = paths.join(folder_path)
		with self._lock:
			self._pins[key] = self._digest(pin)
		logger.info(f"PIN set for folder '{key}'")

	def verify_pin(self, folder_path: str, pin: str) -> bool:
		stored = self._pins.get(paths.join(folder_path))
		if stored is None or not isinstance(pin, str):
			return False
		return constant_time.bytes_eq(stored, self._digest(pin))

	def remove_pin(self, folder_path: str) -> bool:
		key = paths.join(folder_path)
		with self._lock:
			removed = self._pins.pop(key, None) is not None
		if removed:
			logger.info(f"PIN removed from folder '{key}'")
		return removed

	def is_locked(self, folder_path: str) -> bool:
		return paths.join(folder_path) in self._pins

	def locked_paths(self):
		return sorted(self._pins)

	def move(self, old_path: str, new_path: str) -> int:
		"""Carry the PINs of a folder and its subfolders over to a new location."""
		with self._lock:
			moved = {
				key: digest for key, digest in self._pins.items()
				if paths.is_within(key, old_path)
			}
			for key, digest in moved.items():
				del self._pins[key]
			for key, digest in moved.items():
				self._pins[paths.rebase(key, old_path, new_path)] = digest
		return len(moved)

	def discard_under(self, folder_path: str) -> int:
		with self._lock:
			doomed = [key for key in self._pins if paths.is_within(key, folder_path)]
			for key in doomed:
				del self._pins[key]
		return len(doomed)
