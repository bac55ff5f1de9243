"""Storage schemas — prefix-keyed files and folders."""

from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, Field, model_validator

from urbox.schemas.common import ApiModel, Timestamp, utcnow


class FolderRecord(ApiModel):
    """One folder of a prefix-keyed listing. Root is ``key == ""``."""

    model_config = ConfigDict(frozen=True)

    key: str
    name: str = ""


class StorageFile(ApiModel):
    """A file or folder as returned by the storage listing."""

    key: str = ""
    size: int = 0
    last_modified: Timestamp = Field(default_factory=utcnow)
    etag: str | None = None
    is_folder: bool = False

    @model_validator(mode="before")
    @classmethod
    def _infer_folder(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("isFolder", data.get("is_folder")) is None:
            data = {**data, "isFolder": str(data.get("key", "")).endswith("/")}
        return data

    @property
    def name(self) -> str:
        """Last path segment ("a/b/" -> "b", "a/c.txt" -> "c.txt")."""
        parts = self.key.split("/")
        if self.is_folder:
            return parts[-2] if len(parts) > 1 else parts[0]
        return parts[-1]

    @property
    def extension(self) -> str:
        if self.is_folder:
            return ""
        parts = self.name.split(".")
        return parts[-1].lower() if len(parts) > 1 else ""

    @property
    def formatted_size(self) -> str:
        if self.is_folder:
            return ""
        size = self.size
        if size < 1024:
            return f"{size} B"
        if size < 1024 * 1024:
            return f"{size / 1024:.1f} KB"
        if size < 1024 * 1024 * 1024:
            return f"{size / (1024 * 1024):.1f} MB"
        return f"{size / (1024 * 1024 * 1024):.1f} GB"


# ── Response envelopes ──


class FileListResponse(ApiModel):
    files: list[StorageFile] = Field(default_factory=list)


class FolderListResponse(ApiModel):
    folders: list[FolderRecord] = Field(default_factory=list)


class PresignedUrlResponse(ApiModel):
    presigned_url: str
