"""Company file storage: listing, upload, folders, rename/move, download links.

Keys are ``/``-delimited paths; folder keys end with ``/``. Calls are scoped
to the tenant by the ``x-company-id`` header set on the ``ApiClient``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import BinaryIO
from urllib.parse import quote

from urbox.config import get_settings
from urbox.core.errors import UrboxError, ValidationError
from urbox.core.folder_tree import is_within, parent_key
from urbox.core.http import ApiClient, parse_model
from urbox.core.logging import get_logger
from urbox.schemas.storage import (
    FileListResponse,
    FolderListResponse,
    FolderRecord,
    PresignedUrlResponse,
    StorageFile,
)

logger = get_logger(__name__)

BASE = "/api/storage"


def encode_key(key: str) -> str:
    """Percent-encode a key for use in a path, keeping ``/`` separators."""
    return quote(key, safe="/")


def move_targets(folders: Iterable[FolderRecord], item_key: str) -> list[FolderRecord]:
    """Folders an item can be moved into.

    Excludes the item itself, anything below it (a folder cannot move into its
    own subtree) and the folder it already lives in.
    """
    current_parent = parent_key(item_key)
    targets: list[FolderRecord] = []
    for folder in folders:
        if folder.key in (item_key, current_parent):
            continue
        if item_key.endswith("/") and is_within(folder.key, item_key):
            continue
        targets.append(folder)
    return targets


class StorageService:
    def __init__(self, api: ApiClient) -> None:
        self.api = api

    async def list_files(self, prefix: str = "", max_keys: int | None = None) -> list[StorageFile]:
        if max_keys is None:
            max_keys = get_settings().storage_max_keys
        body = await self.api.get(f"{BASE}/list", params={"prefix": prefix, "maxKeys": max_keys})
        return parse_model(FileListResponse, body).files

    async def get_folders(self) -> list[FolderRecord]:
        """Every folder of the company, root (``key == ""``) first."""
        body = await self.api.get(f"{BASE}/folders")
        return parse_model(FolderListResponse, body).folders

    async def upload_file(
        self,
        filename: str,
        content: bytes | BinaryIO,
        *,
        folder: str = "",
        content_type: str = "application/octet-stream",
    ) -> None:
        await self.api.post(
            f"{BASE}/upload",
            data={"folder": folder},
            files={"file": (filename, content, content_type)},
        )
        logger.info("storage_file_uploaded", filename=filename, folder=folder)

    async def create_folder(self, name: str) -> None:
        """Create a folder; ``name`` is the full path, e.g. ``"a/new"``."""
        if not name.strip("/ "):
            raise ValidationError("Folder name is required", field="name")
        await self.api.post(f"{BASE}/folder", json={"name": name})

    async def delete_file(self, key: str) -> None:
        await self.api.delete(f"{BASE}/delete/{encode_key(key)}")
        logger.info("storage_file_deleted", key=key)

    async def delete_folder(self, name: str) -> None:
        """Delete a folder and everything below it."""
        await self.api.delete(f"{BASE}/folder/{encode_key(name)}")
        logger.info("storage_folder_deleted", folder=name)

    async def rename(self, key: str, new_name: str) -> None:
        if not new_name.strip():
            raise ValidationError("New name is required", field="new_name")
        if "/" in new_name:
            raise ValidationError("Name cannot contain '/'", field="new_name")
        await self.api.post(f"{BASE}/rename", json={"key": key, "newName": new_name.strip()})

    async def move(self, key: str, destination: str) -> None:
        if key.endswith("/") and is_within(destination, key):
            raise ValidationError("Cannot move a folder into itself", field="destination")
        await self.api.post(f"{BASE}/move", json={"key": key, "destination": destination})

    async def get_download_url(self, key: str) -> str:
        """Presigned download URL, or the direct download endpoint if issuing one fails."""
        encoded = encode_key(key)
        try:
            body = await self.api.get(f"{BASE}/presigned/download/{encoded}")
            return parse_model(PresignedUrlResponse, body).presigned_url
        except UrboxError as e:
            logger.warning("storage_presign_failed", key=key, error=str(e))
            return self.api.url(f"{BASE}/download/{encoded}")
