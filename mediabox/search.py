from dataclasses import dataclass, field
from typing import List, Optional

from . import paths
from .index import FileIndex
from .models import FileRecord, FolderInfo
from .tree import FolderTreeBuilder


@dataclass
class SearchResult:
	files: List[FileRecord] = field(default_factory=list)
	folders: List[FolderInfo] = field(default_factory=list)

	def to_dict(self) -> dict:
		return {
			"files": [f.to_dict() for f in self.files],
			"folders": [f.to_dict() for f in self.folders],
		}


class Search:
	"""Name search over one folder level at a time. Never recursive."""

	def __init__(self, index: FileIndex, tree: FolderTreeBuilder):
		self.index = index
		self.tree = tree

	def search_files(self, query: str, folder_path: Optional[str] = None) -> List[FileRecord]:
		# in_folder() with an empty path means root-level files only
		scoped = self.index.in_folder(paths.join(folder_path or ""))
		term = (query or "").strip().lower()
		if not term:
			return scoped
		return [f for f in scoped if term in f.original_name.lower()]

	def search_all(self, query: str) -> SearchResult:
		"""Root files and top-level folders whose names contain the query."""
		term = (query or "").strip().lower()
		if not term:
			return SearchResult()

		files = self.search_files(term)
		folders = [f for f in self.tree.build() if term in f.name.lower()]
		return SearchResult(files=files, folders=folders)
