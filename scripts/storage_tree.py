#!/usr/bin/env python3
"""Print the company's storage folder tree, fully expanded.

Uses COMPANY_ID / API_BASE_URL from the environment (or .env).
"""

import asyncio

from urbox.client import UrboxClient
from urbox.core.folder_tree import FolderTree
from urbox.core.logging import setup_logging


def _guides(ancestor_is_last: tuple[bool, ...]) -> str:
    if not ancestor_is_last:
        return ""
    prefix = "".join("    " if last else "│   " for last in ancestor_is_last[:-1])
    return prefix + ("└── " if ancestor_is_last[-1] else "├── ")


async def print_tree():
    async with UrboxClient() as client:
        if not client.company_id:
            print("COMPANY_ID is not set")
            return

        folders = await client.storage.get_folders()
        tree = FolderTree(folders)
        if tree.is_empty:
            print("No folders available")
            return

        tree.expand_all()
        for node in tree.visible_nodes:
            print(f"{_guides(node.ancestor_is_last)}{node.name}")


if __name__ == "__main__":
    setup_logging()
    asyncio.run(print_tree())
