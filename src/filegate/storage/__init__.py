"""Byte storage and file format inference."""

from filegate.storage.formats import EXTENSION_FORMATS, FileFormat, FileType, detect_format
from filegate.storage.local_disk import LocalDiskStorage

__all__ = [
    "EXTENSION_FORMATS",
    "FileFormat",
    "FileType",
    "LocalDiskStorage",
    "detect_format",
]
