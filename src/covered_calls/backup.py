"""
Backup export and import for covered call positions.

JSON backups carry a small envelope (export time, schema version, count)
around the position list. CSV backups hold one position per row with the
same columns. Decimals are written as strings so an export followed by an
import reproduces every stored field exactly.
"""

import csv
import io
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable

from .exceptions import BackupFormatError, ValidationError
from .models import UserContext
from .repository import PositionRepository
from .validation import parse_position_record

logger = logging.getLogger(__name__)

CSV_FIELDS = [
    "id",
    "account",
    "ticker",
    "strike_price",
    "stock_price",
    "option_ticker",
    "quantity",
    "open_date",
    "expiration_date",
    "premium_per_contract",
    "fees",
    "current_option_price",
    "status",
    "closed_at",
    "close_price",
    "created_at",
    "updated_at",
]


@dataclass
class ImportResult:
    """Outcome of a backup import."""

    imported: int = 0
    skipped: int = 0
    total: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "imported": self.imported,
            "skipped": self.skipped,
            "total": self.total,
            "errors": list(self.errors),
        }


class BackupService:
    """Export and restore a user's positions."""

    def __init__(self, repository: PositionRepository):
        """
        Initialize the backup service.

        Args:
            repository: PositionRepository for reading and writing positions
        """
        self.repository = repository

    def export_json(self, user: UserContext) -> str:
        """Export the user's positions as a JSON backup document."""
        positions = self.repository.list_positions(user)
        backup = {
            "exported_at": datetime.now().isoformat(),
            "schema_version": self.repository.schema_version(),
            "positions_count": len(positions),
            "positions": [p.to_dict() for p in positions],
        }
        return json.dumps(backup, indent=2)

    def export_csv(self, user: UserContext) -> str:
        """Export the user's positions as CSV."""
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for position in self.repository.list_positions(user):
            row = position.to_dict()
            writer.writerow({k: ("" if row[k] is None else row[k]) for k in CSV_FIELDS})
        return output.getvalue()

    def import_json(self, user: UserContext, text: str) -> ImportResult:
        """
        Import positions from a JSON backup.

        Numbers are parsed straight to Decimal. Ids in the backup are
        ignored; the database assigns new ones.

        Raises:
            BackupFormatError: If the document is not valid JSON or lacks a
                ``positions`` list
        """
        try:
            backup = json.loads(text, parse_float=Decimal)
        except json.JSONDecodeError as e:
            raise BackupFormatError(f"Invalid JSON backup: {e}") from e

        if not isinstance(backup, Mapping) or not isinstance(backup.get("positions"), list):
            raise BackupFormatError("Invalid backup format: expected a 'positions' list")

        return self._import_rows(user, backup["positions"])

    def import_csv(self, user: UserContext, text: str) -> ImportResult:
        """
        Import positions from a CSV backup.

        Raises:
            BackupFormatError: If required columns are missing
        """
        reader = csv.DictReader(io.StringIO(text))
        required = {"account", "ticker", "strike_price", "stock_price", "quantity",
                    "open_date", "expiration_date", "premium_per_contract"}
        missing = required - set(reader.fieldnames or [])
        if missing:
            raise BackupFormatError(f"CSV backup missing columns: {sorted(missing)}")
        return self._import_rows(user, list(reader))

    def _import_rows(self, user: UserContext, rows: Iterable[Any]) -> ImportResult:
        result = ImportResult()
        for index, row in enumerate(rows):
            result.total += 1
            if not isinstance(row, Mapping):
                result.skipped += 1
                result.errors.append(f"Row {index}: not an object")
                logger.error(f"Failed to import position at row {index}: not an object")
                continue

            data = {k: v for k, v in row.items() if k != "id"}
            try:
                position = parse_position_record(data)
            except ValidationError as e:
                result.skipped += 1
                result.errors.append(f"Row {index}: {e}")
                logger.error(f"Failed to import position at row {index}: {e}")
                continue

            self.repository.create(user, position)
            result.imported += 1

        logger.info(
            f"Imported {result.imported} of {result.total} positions "
            f"({result.skipped} skipped) for user {user.user_id}"
        )
        return result

    def backup_info(self, user: UserContext) -> dict[str, Any]:
        """Schema version and position counts for the user."""
        counts = self.repository.count_by_status(user)
        return {
            "schema_version": self.repository.schema_version(),
            "total_positions": counts["total"],
            "open_positions": counts["Open"],
            "closed_positions": counts["Closed"],
            "database_path": self.repository.db_path,
        }

