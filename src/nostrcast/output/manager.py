"""Writes the feed and its health record to the output directory.

Both files are replaced atomically: content goes to a uniquely named
temporary file in the same directory, which is then renamed over the target.
Readers see either the previous file or the new one, never a partial write.
"""

import asyncio
import logging
import os
import tempfile
from pathlib import Path

import aiofiles

from nostrcast.output.models import FeedHealth, FeedOutput
from nostrcast.utils.errors import OutputError

logger = logging.getLogger(__name__)

NOJEKYLL_FILENAME = ".nojekyll"
PUBLISHED_FILE_MODE = 0o644


class OutputManager:
    """Manage file output for generated feeds.

    Example:
        >>> manager = OutputManager(Path("dist"))
        >>> output = await manager.write_feed(xml, health)
        >>> print(output.feed_path)
        dist/rss.xml
    """

    def __init__(
        self,
        output_dir: Path,
        feed_filename: str = "rss.xml",
        health_filename: str = "rss-health.json",
        write_nojekyll: bool = False,
    ) -> None:
        """Initialize output manager.

        Args:
            output_dir: Directory that receives the files (created on write)
            feed_filename: Name of the RSS file
            health_filename: Name of the health JSON file
            write_nojekyll: Also create an empty .nojekyll marker for GitHub Pages
        """
        self.output_dir = output_dir
        self.feed_path = output_dir / feed_filename
        self.health_path = output_dir / health_filename
        self.write_nojekyll = write_nojekyll

    async def write_feed(self, content: str, health: FeedHealth) -> FeedOutput:
        """Write the feed, then its health record.

        Args:
            content: Rendered RSS document
            health: Health record; its feed_size should match ``content``

        Returns:
            FeedOutput describing what was written

        Raises:
            OutputError: If the directory or either file cannot be written
        """
        try:
            await asyncio.to_thread(self.output_dir.mkdir, parents=True, exist_ok=True)
        except OSError as e:
            raise OutputError(
                f"Could not create output directory {self.output_dir}: {e}",
                suggestion="Check the path and its permissions",
            ) from e

        await self._write_file_atomic(self.feed_path, content)
        logger.info(f"Wrote {self.feed_path} ({len(content.encode('utf-8'))} bytes)")

        await self._write_file_atomic(self.health_path, health.to_json())
        logger.info(f"Wrote {self.health_path}")

        nojekyll_path = None
        if self.write_nojekyll:
            nojekyll_path = self.output_dir / NOJEKYLL_FILENAME
            await self._write_file_atomic(nojekyll_path, "")

        return FeedOutput(
            feed_path=self.feed_path,
            health_path=self.health_path,
            nojekyll_path=nojekyll_path,
            feed_size=len(content.encode("utf-8")),
            health=health,
        )

    async def _write_file_atomic(self, file_path: Path, content: str) -> None:
        """Write to a temp file beside ``file_path`` and rename it into place.

        Raises:
            OutputError: If writing or renaming fails; the temp file is removed
        """
        try:
            temp_fd, temp_name = await asyncio.to_thread(
                tempfile.mkstemp,
                dir=file_path.parent,
                prefix=f".{file_path.name}.",
                suffix=".tmp",
            )
        except OSError as e:
            raise OutputError(f"Failed to write {file_path}: {e}") from e
        os.close(temp_fd)
        temp_path = Path(temp_name)

        try:
            async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
                await f.write(content)

            # mkstemp creates 0600; published files must be world-readable
            await asyncio.to_thread(temp_path.chmod, PUBLISHED_FILE_MODE)
            await asyncio.to_thread(temp_path.replace, file_path)

        except OSError as e:
            await asyncio.to_thread(temp_path.unlink, missing_ok=True)
            raise OutputError(f"Failed to write {file_path}: {e}") from e
