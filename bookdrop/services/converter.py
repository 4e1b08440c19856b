"""EPUB to KEPUB conversion through the external ``kepubify`` tool."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional

from bookdrop.domain.transfers.exceptions import ConversionFailureError

logger = logging.getLogger(__name__)

KEPUB_SUFFIX = ".kepub.epub"


def _strip_epub(name: str) -> str:
    if name.lower().endswith(".epub"):
        return name[: -len(".epub")]
    return name


class KepubConverter:
    """Runs ``kepubify``; disabled when the executable is not on PATH."""

    def __init__(self, command: str = "kepubify", timeout: Optional[float] = 120) -> None:
        self.command = command
        self.timeout = timeout
        self._executable = shutil.which(command)
        if self._executable is None:
            logger.info("%s not found on PATH, KEPUB conversion disabled", command)

    @property
    def available(self) -> bool:
        return self._executable is not None

    @staticmethod
    def converted_name(name: str) -> str:
        return _strip_epub(name) + KEPUB_SUFFIX

    def convert(self, source: Path) -> Path:
        if self._executable is None:
            raise ConversionFailureError(f"{self.command} is not installed")

        target = source.with_name(self.converted_name(source.name))
        cmd = [self._executable, "-o", str(target), str(source)]
        try:
            result = subprocess.run(cmd, capture_output=True, timeout=self.timeout, check=False)
        except subprocess.TimeoutExpired as exc:
            target.unlink(missing_ok=True)
            raise ConversionFailureError(f"{self.command} timed out after {self.timeout}s") from exc
        except OSError as exc:
            raise ConversionFailureError(f"failed to run {self.command}: {exc}") from exc

        if result.returncode != 0:
            target.unlink(missing_ok=True)
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise ConversionFailureError(
                f"{self.command} exited with code {result.returncode}: {stderr}"
            )
        if not target.is_file():
            raise ConversionFailureError(f"{self.command} produced no output at {target}")
        return target
