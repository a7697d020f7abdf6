"""Spreadsheet and JSON export of captured attendees."""

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from .models import AttendeeRecord
from .utils import sanitize_filename_component

logger = logging.getLogger(__name__)

SHEET_TITLE = "Attendees"
MAX_COLUMN_WIDTH = 60


def export_filename_stem(event_name: str) -> str:
    """``attendees_<event name>`` with non-alphanumerics as ``_``, lower-cased."""
    return f"attendees_{sanitize_filename_component(event_name)}"


@dataclass
class ExportResult:
    """Paths of the written artifacts (None for disabled formats)."""

    xlsx_path: Path | None = None
    json_path: Path | None = None


class RecordExporter:
    """Writes an ordered list of AttendeeRecords to XLSX and raw JSON."""

    def __init__(self, output_dir: str | Path = ".", write_xlsx: bool = True, write_json: bool = True):
        self.output_dir = Path(output_dir).expanduser()
        self.write_xlsx = write_xlsx
        self.write_json = write_json

    def export(self, records: Sequence[AttendeeRecord], event_name: str) -> ExportResult:
        """Write the artifacts for one event. Errors propagate."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        stem = export_filename_stem(event_name)
        result = ExportResult()

        if self.write_xlsx:
            result.xlsx_path = self.output_dir / f"{stem}.xlsx"
            self._write_xlsx(records, result.xlsx_path)
            logger.info(f"Excel file saved: {result.xlsx_path}")

        if self.write_json:
            result.json_path = self.output_dir / f"{stem}.json"
            payload = [record.to_export_dict() for record in records]
            result.json_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
            logger.info(f"Saved attendee data to {result.json_path}")

        return result

    def _write_xlsx(self, records: Sequence[AttendeeRecord], path: Path) -> None:
        columns = AttendeeRecord.export_columns()

        wb = Workbook()
        ws = wb.active
        ws.title = SHEET_TITLE

        header_font = Font(name="Calibri", bold=True, color="FFFFFF", size=11)
        header_fill = PatternFill("solid", fgColor="1A1917")
        for col, name in enumerate(columns, 1):
            cell = ws.cell(1, col, name)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = Alignment(horizontal="center", vertical="center")
        ws.freeze_panes = "A2"

        widths = [len(name) for name in columns]
        for row_index, record in enumerate(records, 2):
            row = record.to_export_dict()
            for col, name in enumerate(columns, 1):
                value = row.get(name)
                if value is None:
                    continue
                if isinstance(value, str):
                    # Guest text is always literal: no control characters, never a formula
                    cell = ws.cell(row_index, col, ILLEGAL_CHARACTERS_RE.sub("", value))
                    cell.data_type = "s"
                else:
                    ws.cell(row_index, col, value)
                widths[col - 1] = max(widths[col - 1], len(str(value)))

        for col, width in enumerate(widths, 1):
            ws.column_dimensions[get_column_letter(col)].width = min(width + 2, MAX_COLUMN_WIDTH)

        wb.save(path)
