"""Atomic report storage.

Reports downloaded from the service are written through a ``.tmp`` sibling
and :func:`os.replace` so a crash never leaves a half-written file behind.
"""

from __future__ import annotations

import contextlib
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class ReportStore:
    """Saves downloaded analysis reports under a single directory."""

    def __init__(self, report_dir: Path) -> None:
        self.report_dir = report_dir

    def path_for(self, report_id: str) -> Path:
        """``"abc"`` → ``<report_dir>/report-abc.json``."""
        safe_id = "".join(ch for ch in report_id if ch.isalnum() or ch in "-_")
        if not safe_id:
            raise ValueError(f"Unusable report id: {report_id!r}")
        return self.report_dir / f"report-{safe_id}.json"

    def save(self, report_id: str, payload: bytes) -> Path:
        """Write *payload* for *report_id* and return the final path.

        Raises :class:`OSError` if the file cannot be written; the temporary
        sibling is removed first.
        """
        path = self.path_for(report_id)
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(payload)
            os.replace(tmp, path)
        except OSError as exc:
            logger.error("save(%s) failed: %s", path, exc)
            with contextlib.suppress(OSError):
                tmp.unlink(missing_ok=True)
            raise
        logger.info("Saved report %s (%d bytes)", path, len(payload))
        return path
