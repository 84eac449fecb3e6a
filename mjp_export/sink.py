"""
Artifact sink: persists captured documents and browser downloads under the
configured download directory.
"""

import logging
import os

from mjp_export.models import CapturedArtifact

logger = logging.getLogger("mjp_export")


class ArtifactSink:
    """Writes files into *download_dir*, creating it on first use."""

    def __init__(self, download_dir: str):
        self.download_dir = download_dir
        self.saved: list[str] = []

    def _target(self, filename: str) -> str:
        os.makedirs(self.download_dir, exist_ok=True)
        # Never let a name escape the download directory
        return os.path.join(self.download_dir, os.path.basename(filename))

    def save(self, artifact: CapturedArtifact) -> str:
        """Write *artifact* and return the path it was saved to."""
        path = self._target(artifact.filename)
        if isinstance(artifact.content, bytes):
            with open(path, "wb") as f:
                f.write(artifact.content)
        else:
            with open(path, "w", encoding="utf-8") as f:
                f.write(artifact.content)
        self.saved.append(path)
        logger.info(f"   💾 Saved {artifact.mime_type}: {path}")
        return path

    def save_download(self, download, filename: str) -> str:
        """Persist a Playwright download under *filename*. Blocks until complete."""
        path = self._target(filename)
        download.save_as(path)
        self.saved.append(path)
        logger.info(f"   💾 Saved download: {path}")
        return path
