"""Local disk storage for uploaded project images."""

import asyncio
import uuid
from pathlib import Path

import structlog

from devstack.config import get_settings

logger = structlog.get_logger(__name__)

EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


class LocalStorage:
    """Writes files under ``root`` and serves them from ``url_prefix``.

    Layout: ``{root}/projects/{project_id}/{uuid}{ext}``.
    """

    def __init__(self, root: str | Path, url_prefix: str = "/uploads") -> None:
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    async def save(self, project_id: uuid.UUID, content_type: str, data: bytes) -> str:
        relative = Path("projects") / str(project_id) / f"{uuid.uuid4()}{EXTENSIONS[content_type]}"
        target = self.root / relative
        await asyncio.to_thread(self._write, target, data)
        logger.info("upload_saved", path=str(relative), size=len(data))
        return f"{self.url_prefix}/{relative.as_posix()}"

    async def delete(self, url: str) -> None:
        """Remove the file behind ``url``; missing files are ignored."""
        if not url.startswith(f"{self.url_prefix}/"):
            return
        target = self.root / url[len(self.url_prefix) + 1 :]
        try:
            await asyncio.to_thread(target.unlink, True)
        except OSError as e:
            logger.warning("upload_delete_failed", url=url, error=str(e))

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)


def get_storage() -> LocalStorage:
    """Dependency returning storage rooted at the configured upload dir."""
    settings = get_settings()
    return LocalStorage(settings.upload_dir, settings.upload_url_prefix)
