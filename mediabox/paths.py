"""
Folder path helpers.

Folder paths are slash-joined segment lists relative to the upload root
("trip/day1"). The root itself is the empty string. Every comparison here
works segment by segment so that "photos" never matches "photos2".
"""
import re
from typing import List, Optional

from .errors import InvalidInputError

ILLEGAL_CHARS = re.compile(r'[<>:"/\\|?*]')
RESERVED_SEGMENTS = {".", ".."}


def split(path: Optional[str]) -> List[str]:
	"""Split a folder path into its non-empty segments."""
	if not path:
		return []
	clean = path.replace("\\", "/").strip("/")
	return [part for part in clean.split("/") if part]


def join(*segments: str) -> str:
	parts = []
	for segment in segments:
		parts.extend(split(segment))
	return "/".join(parts)


def normalize(path: Optional[str]) -> str:
	"""
	Canonical form of a folder path coming from a client.
	Raises InvalidInputError for segments that would escape the upload root.
	"""
	parts = [part.strip() for part in split(path)]
	for part in parts:
		if not part or part in RESERVED_SEGMENTS:
			raise InvalidInputError(f"Illegal folder path: {path!r}")
	return "/".join(parts)


def sanitize_segment(name: str) -> str:
	"""Replace characters that are illegal in a directory name."""
	return ILLEGAL_CHARS.sub("_", name.strip()).strip()


def sanitize(path: Optional[str]) -> str:
	"""Sanitize every segment of a user supplied folder path."""
	parts = [sanitize_segment(part) for part in split(path)]
	parts = [part for part in parts if part]
	for part in parts:
		if part in RESERVED_SEGMENTS:
			raise InvalidInputError(f"Illegal folder name: {part!r}")
	if not parts:
		raise InvalidInputError("Folder name is required")
	return "/".join(parts)


def name_of(path: str) -> str:
	parts = split(path)
	return parts[-1] if parts else ""


def parent_of(path: str) -> Optional[str]:
	"""All but the last segment, or None for a top-level folder."""
	parts = split(path)
	if len(parts) <= 1:
		return None
	return "/".join(parts[:-1])


def ancestors(path: str) -> List[str]:
	"""Every prefix path of `path`, shortest first, including `path` itself."""
	parts = split(path)
	return ["/".join(parts[:i]) for i in range(1, len(parts) + 1)]


def is_within(path: Optional[str], folder: str) -> bool:
	"""True if `path` equals `folder` or lies below it."""
	folder_parts = split(folder)
	path_parts = split(path)
	if not folder_parts:
		return True
	return path_parts[:len(folder_parts)] == folder_parts


def rebase(path: str, old_prefix: str, new_prefix: str) -> str:
	"""
	Swap the leading `old_prefix` segments of `path` for `new_prefix`.
	`path` must satisfy is_within(path, old_prefix).
	"""
	old_parts = split(old_prefix)
	path_parts = split(path)
	if path_parts[:len(old_parts)] != old_parts:
		raise ValueError(f"{path!r} is not inside {old_prefix!r}")
	return "/".join(split(new_prefix) + path_parts[len(old_parts):])
