from __future__ import annotations

import os
import shutil
import tempfile
from typing import List, Optional

from utils import logger


class TempWorkspace:
    """Per-request scratch directory, removed on every exit path.

    Removal failures are logged and never raised, so they cannot replace the
    error that is already propagating.
    """

    def __init__(self, root: Optional[str] = None, prefix: str = "label-inpaint-"):
        self.root = root
        self.prefix = prefix
        self.path: Optional[str] = None
        self.files: List[str] = []

    def __enter__(self) -> "TempWorkspace":
        if self.root:
            os.makedirs(self.root, exist_ok=True)
        self.path = tempfile.mkdtemp(prefix=self.prefix, dir=self.root)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.cleanup()
        return False

    def write(self, name: str, data: bytes) -> str:
        if self.path is None:
            raise RuntimeError("TempWorkspace used outside its context")
        path = os.path.join(self.path, os.path.basename(name))
        with open(path, "wb") as f:
            f.write(data)
        self.files.append(path)
        return path

    def cleanup(self):
        if self.path is None:
            return
        try:
            shutil.rmtree(self.path)
            logger.debug(f"Removed temp workspace {self.path}")
        except OSError as e:
            logger.warning(f"Failed to cleanup {self.path}: {e}")
        finally:
            self.path = None
            self.files = []
