"""Generated-files root: per-block directories plus shared symbols/ and scss/ subdirectories"""

import logging
import shutil
from pathlib import Path


logger = logging.getLogger(__name__)

SYMBOLS_DIR = "symbols"
SCSS_DIR = "scss"


class DirectoryManager:
    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)

    def ensure_base_directory(self) -> Path:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        return self.base_dir

    def ensure_subdirectory(self, name: str) -> Path:
        path = self.base_dir / name
        path.mkdir(parents=True, exist_ok=True)
        return path

    def check_slug(self, slug: str) -> str:
        """Reject slugs that cannot name a single file or directory inside the root."""
        if not slug or slug.startswith(".") or any(c in slug for c in "/\\\0"):
            raise ValueError(f"Invalid slug: {slug!r}")
        return slug

    def contains(self, path: Path) -> bool:
        """True when path resolves to somewhere below the root."""
        return self.base_dir.resolve() in Path(path).resolve().parents

    def block_path(self, slug: str) -> Path:
        """Where a block slug's directory lives. Does not create it."""
        if self.check_slug(slug) in {SYMBOLS_DIR, SCSS_DIR}:
            raise ValueError(f"Invalid block slug: {slug!r}")
        return self.base_dir / slug

    def block_directory(self, slug: str) -> Path:
        """Create (if needed) and return the directory for a block slug."""
        path = self.block_path(slug)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def cleanup_all(self) -> None:
        """Delete the entire generated-files root."""
        if self.base_dir.exists():
            shutil.rmtree(self.base_dir)
            logger.info("Removed generated-files root %s", self.base_dir)

    def delete_directory(self, path: Path) -> bool:
        """Delete a directory inside the root. Returns True when it no longer exists."""
        path = Path(path)
        if not path.exists():
            return True
        if not self.contains(path):
            raise ValueError(f"Refusing to delete {path}: outside {self.base_dir}")
        shutil.rmtree(path)
        return not path.exists()
