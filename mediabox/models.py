from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Dict, Any

from .errors import InvalidInputError


@dataclass
class NewFile:
    """Metadata for a file that has already been written to disk."""
    name: str                # On-disk name: "1754152117647-frc9uc.jpg"
    original_name: str       # What the user called it: "photo.jpg"
    path: str                # Absolute path of the stored file
    size: int
    mime_type: str
    thumbnail_path: Optional[str] = None
    folder_path: Optional[str] = None   # None = root

    def validate(self):
        for attr in ("name", "original_name", "path", "mime_type"):
            if not getattr(self, attr):
                raise InvalidInputError(f"{attr} is required")
        if self.size is None or self.size < 0:
            raise InvalidInputError("size must be >= 0")


@dataclass
class FileRecord:
    id: str
    name: str
    original_name: str
    path: str
    size: int
    mime_type: str
    created_at: datetime
    thumbnail_path: Optional[str] = None
    folder_path: Optional[str] = None

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    @property
    def is_video(self) -> bool:
        return self.mime_type.startswith("video/")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "originalName": self.original_name,
            "path": self.path,
            "size": self.size,
            "mimeType": self.mime_type,
            "thumbnailPath": self.thumbnail_path,
            "folderPath": self.folder_path,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass
class FolderInfo:
    """A folder as derived from the file index and the upload directory."""
    name: str
    path: str
    parent_path: Optional[str] = None
    files: List[FileRecord] = field(default_factory=list)
    subfolders: List['FolderInfo'] = field(default_factory=list)
    subfolder_count: int = 0
    has_pin: bool = False

    @property
    def file_count(self) -> int:
        return len(self.files)

    @property
    def is_locked(self) -> bool:
        return self.has_pin

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "parentPath": self.parent_path,
            "fileCount": self.file_count,
            "subfolderCount": self.subfolder_count,
            "files": [f.to_dict() for f in self.files],
            "subfolders": [s.to_dict() for s in self.subfolders],
            "hasPin": self.has_pin,
            "isLocked": self.is_locked,
        }
