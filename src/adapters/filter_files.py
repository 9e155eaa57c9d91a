"""File system storage adapter.

Implements the core FilterStoragePort: whole-file UTF-8 reads and writes.
"""

from __future__ import annotations

import glob
import os
from typing import List


class FileStorage:
    """Reads and overwrites filter lists on the local file system."""

    def read(self, path: str) -> str:
        # newline="" keeps \r\n endings intact for byte-for-byte round trips.
        with open(path, "r", encoding="utf-8", newline="") as handle:
            return handle.read()

    def write(self, path: str, content: str) -> None:
        with open(path, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)


def find_files(pattern: str) -> List[str]:
    """Return files matching a (recursive) glob expression, sorted."""

    return sorted(path for path in glob.glob(pattern, recursive=True) if not os.path.isdir(path))
