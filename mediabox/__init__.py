from .core import MediaStore
from .config import StoreConfig
from .models import FileRecord, FolderInfo, NewFile

__all__ = ["MediaStore", "StoreConfig", "FileRecord", "FolderInfo", "NewFile"]
