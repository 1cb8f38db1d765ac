"""File type and format tags, and format inference from file names."""

from __future__ import annotations

import posixpath
from enum import Enum


class FileType(str, Enum):
    """Broad category declared by the uploader."""

    DOCUMENT = "document"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    ARCHIVE = "archive"
    OTHER = "other"


class FileFormat(str, Enum):
    """Concrete file format, usually inferred from the extension."""

    # Documents
    PDF = "pdf"
    DOC = "doc"
    DOCX = "docx"
    XLS = "xls"
    XLSX = "xlsx"
    PPT = "ppt"
    PPTX = "pptx"
    TXT = "txt"
    RTF = "rtf"

    # Images
    JPG = "jpg"
    JPEG = "jpeg"
    PNG = "png"
    GIF = "gif"
    BMP = "bmp"
    SVG = "svg"
    WEBP = "webp"

    # Videos
    MP4 = "mp4"
    AVI = "avi"
    MOV = "mov"
    WMV = "wmv"
    MKV = "mkv"

    # Audio
    MP3 = "mp3"
    WAV = "wav"
    OGG = "ogg"
    FLAC = "flac"

    # Archives
    ZIP = "zip"
    RAR = "rar"
    TAR = "tar"
    GZIP = "gz"

    OTHER = "other"


# Every known format is keyed by its own tag ("gz" for GZIP).
EXTENSION_FORMATS: dict[str, FileFormat] = {
    fmt.value: fmt for fmt in FileFormat if fmt is not FileFormat.OTHER
}


def detect_format(filename: str) -> FileFormat:
    """Infer a :class:`FileFormat` from *filename*'s final extension.

    Examples:
        detect_format("report.PDF") -> FileFormat.PDF
        detect_format("backup.tar.gz") -> FileFormat.GZIP
        detect_format("Makefile") -> FileFormat.OTHER
    """
    _, ext = posixpath.splitext(posixpath.basename(filename.strip()))
    if not ext:
        return FileFormat.OTHER
    return EXTENSION_FORMATS.get(ext[1:].lower(), FileFormat.OTHER)
