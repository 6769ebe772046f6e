"""
Flat directory of rendered chart artifacts.

The directory listing is the only index: there is no manifest file.
Generated names carry a millisecond timestamp; explicit names supplied by a
caller are reduced to their base name so nothing is written outside the
directory.
"""

import logging
import time
from datetime import datetime, timezone
from pathlib import Path

from schoolchat.models.visualization import OutputRef, VisualizationFile

logger = logging.getLogger(__name__)

ARTIFACT_EXTENSIONS = (".html", ".png", ".jpeg", ".jpg")


def safe_filename(filename: str) -> str | None:
    """Base name of a caller-supplied filename, or None when nothing usable remains."""
    name = Path(str(filename).replace("\\", "/")).name.strip()
    if not name or name in (".", ".."):
        return None
    return name


def with_extension(name: str, extension: str) -> str:
    """name with its suffix set to extension ("jpg" is accepted for "jpeg")."""
    extension = extension.lstrip(".").lower()
    suffix = Path(name).suffix.lower().lstrip(".")
    if suffix == extension or (extension == "jpeg" and suffix == "jpg"):
        return name
    stem = Path(name).stem if suffix in {ext.lstrip(".") for ext in ARTIFACT_EXTENSIONS} else name
    return f"{stem}.{extension}"


class VisualizationStore:
    """Reads and writes artifacts under one output directory."""

    def __init__(self, output_dir: str | Path, url_prefix: str = "/visualizations") -> None:
        self.output_dir = Path(output_dir)
        self.url_prefix = url_prefix.rstrip("/")

    def ensure_dir(self) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        return self.output_dir

    def url_for(self, filename: str) -> str:
        return f"{self.url_prefix}/{filename}"

    def new_name(self, prefix: str, extension: str, filename: str | None = None) -> str:
        """
        Pick the artifact filename.

        An explicit filename wins (base name only), with its suffix replaced
        by extension when it does not already match, so the name always
        describes the bytes written. Otherwise "<prefix>_<epoch ms>.<extension>",
        bumped with a counter if that name already exists.
        """
        if filename:
            explicit = safe_filename(filename)
            if explicit:
                return with_extension(explicit, extension)
        stamp = int(time.time() * 1000)
        candidate = f"{prefix}_{stamp}.{extension}"
        counter = 1
        while (self.output_dir / candidate).exists():
            candidate = f"{prefix}_{stamp}_{counter}.{extension}"
            counter += 1
        return candidate

    def write_text(self, filename: str, content: str) -> OutputRef:
        path = self.ensure_dir() / filename
        path.write_text(content, encoding="utf-8")
        logger.info(f"Wrote visualization {filename}", extra={"bytes": path.stat().st_size})
        return OutputRef(filename=filename, url=self.url_for(filename))

    def write_bytes(self, filename: str, content: bytes) -> OutputRef:
        path = self.ensure_dir() / filename
        path.write_bytes(content)
        logger.info(f"Wrote visualization {filename}", extra={"bytes": len(content)})
        return OutputRef(filename=filename, url=self.url_for(filename))

    def list(self) -> list[VisualizationFile]:
        """Stored artifacts, newest first by modification time."""
        if not self.output_dir.exists():
            return []
        entries = []
        for path in self.output_dir.iterdir():
            if not path.is_file() or path.suffix.lower() not in ARTIFACT_EXTENSIONS:
                continue
            stat = path.stat()
            entries.append(
                (
                    stat.st_mtime,
                    VisualizationFile(
                        filename=path.name,
                        url=self.url_for(path.name),
                        created=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                        size_bytes=stat.st_size,
                    ),
                )
            )
        entries.sort(key=lambda entry: entry[0], reverse=True)
        return [entry for _, entry in entries]

    def delete(self, filename: str) -> bool:
        """Remove one artifact. Returns False when it does not exist."""
        name = safe_filename(filename)
        if name is None:
            return False
        try:
            (self.output_dir / name).unlink()
        except FileNotFoundError:
            return False
        logger.info(f"Deleted visualization {name}")
        return True
