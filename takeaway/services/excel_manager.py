"""
Menu workbook writer.

Exports can be triggered while a worker is still writing the previous
one, so the workbook is only touched while holding a sibling ``.lock``
file (filelock works across processes).
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
from filelock import FileLock, Timeout

from takeaway.core.config import get_settings

logger = logging.getLogger(__name__)


class ExcelManager:
    """Reads and writes the menu snapshot workbook."""

    MENU_COLUMNS = [
        "dish_id",
        "name",
        "category",
        "price",
        "status",
        "flavors",
        "description",
        "exported_at",
    ]

    @staticmethod
    def menu_file() -> Path:
        settings = get_settings()
        return Path(settings.data_directory) / settings.menu_export_filename

    @classmethod
    def _lock(cls) -> FileLock:
        path = cls.menu_file()
        return FileLock(str(path.with_name(path.name + ".lock")),
                        timeout=get_settings().excel_lock_timeout)

    @classmethod
    def export_menu(cls, rows: list[dict[str, Any]]) -> dict[str, Any]:
        """
        Replace the workbook with the given rows.

        Args:
            rows: Dicts keyed by MENU_COLUMNS; ``exported_at`` is filled in

        Returns:
            dict with ``success``, ``message``, ``rows`` and ``exported_at``
        """
        path = cls.menu_file()
        path.parent.mkdir(parents=True, exist_ok=True)
        outcome: dict[str, Any] = {"success": False, "rows": len(rows), "exported_at": None}

        exported_at = datetime.now().isoformat()
        frame = pd.DataFrame(
            [{**{c: row.get(c) for c in cls.MENU_COLUMNS}, "exported_at": exported_at} for row in rows],
            columns=cls.MENU_COLUMNS,
        )

        try:
            with cls._lock():
                frame.to_excel(str(path), index=False, engine="openpyxl")
        except Timeout:
            outcome["message"] = f"Workbook locked for more than {get_settings().excel_lock_timeout}s"
            logger.error(f"Menu export skipped: {outcome['message']}")
            return outcome
        except OSError as e:
            outcome["message"] = f"Cannot write {path}: {e}"
            logger.error(outcome["message"])
            return outcome

        logger.info(f"Menu workbook written: {path} ({len(rows)} dishes)")
        outcome.update(success=True, message=f"{len(rows)} dishes exported", exported_at=exported_at)
        return outcome

    @classmethod
    def get_menu(cls) -> list[dict[str, Any]]:
        """Rows of the last export; empty when nothing was exported yet."""
        path = cls.menu_file()
        if not path.exists():
            return []

        with cls._lock():
            frame = pd.read_excel(path, engine="openpyxl")
        return frame.to_dict("records")

    @classmethod
    def clear_all(cls) -> bool:
        """Delete the workbook and its lock file."""
        path = cls.menu_file()
        try:
            path.unlink(missing_ok=True)
            path.with_name(path.name + ".lock").unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Could not remove menu export: {e}")
            return False
        logger.info("Menu export removed")
        return True
