"""
File Parser - turns an uploaded workbook or CSV payload into raw rows.

Workbooks are read sheet by sheet with openpyxl; every sheet with a header
and at least one data row contributes rows tagged with the sheet name. CSV
payloads go through csv.DictReader. Rows keep the source header text as keys;
canonical field mapping happens in the normalizer.
"""

import csv
import io
import logging
import zipfile
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from services.errors import FileUnreadableError
from services.field_utils import canonical_key, is_blank, parse_date
from services.import_schema import PeriodFilter

logger = logging.getLogger(__name__)

SUPPORTED_FILE_TYPES = ('xlsx', 'csv')


@dataclass
class RawRow:
    """One data row as read from the file."""

    row: int
    values: Dict[str, Any] = field(default_factory=dict)
    sheet: Optional[str] = None

    def get(self, canonical_name: str) -> Any:
        """Look up a value by canonical field name, whatever the header spelling."""
        for header, value in self.values.items():
            if canonical_key(header) == canonical_name:
                return value
        return None


class FileParser:
    """
    Parse xlsx/csv payloads into RawRow lists.

    The optional period filter drops rows that start before period_start or
    end after period_end. A date that cannot be parsed is not checked, so the
    validator can still report it.
    """

    def __init__(self, period: Optional[PeriodFilter] = None):
        self.period = period

    def parse(self, content: bytes, file_type: str) -> List[RawRow]:
        """
        Parse the whole payload.

        Args:
            content: Raw file bytes
            file_type: 'xlsx' or 'csv'

        Returns:
            Rows in source order (blank rows and out-of-period rows removed)

        Raises:
            FileUnreadableError: The payload cannot be read; nothing is returned
        """
        file_type = (file_type or '').lower().lstrip('.')
        if file_type == 'xlsx':
            rows = list(self._parse_workbook(content))
        elif file_type == 'csv':
            rows = list(self._parse_csv(content))
        else:
            raise FileUnreadableError(
                f"Unsupported file type: {file_type}. Use .xlsx or .csv",
                file_type=file_type
            )

        parsed = len(rows)
        if self.period is not None:
            rows = [row for row in rows if self._in_period(row)]
            logger.info(f"Period filter kept {len(rows)} of {parsed} rows")

        logger.info(f"Parsed {len(rows)} rows from {file_type} payload")
        return rows

    def _parse_workbook(self, content: bytes) -> Iterator[RawRow]:
        try:
            workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        except (zipfile.BadZipFile, InvalidFileException, KeyError, OSError, ValueError) as e:
            raise FileUnreadableError(f"Could not read workbook: {e}", file_type='xlsx') from e

        try:
            sheets = []
            for worksheet in workbook.worksheets:
                sheet_rows = list(worksheet.iter_rows(values_only=True))
                if len(sheet_rows) < 2:
                    logger.debug(f"Skipping sheet '{worksheet.title}': no data rows")
                    continue
                sheets.append((worksheet.title, sheet_rows))
        finally:
            workbook.close()

        if not sheets:
            logger.warning("Workbook contains no sheet with data rows")

        for sheet_name, sheet_rows in sheets:
            headers = [str(cell).strip() if cell is not None else '' for cell in sheet_rows[0]]
            logger.info(f"Processing sheet: {sheet_name} ({len(sheet_rows) - 1} data rows)")

            for row_number, cells in enumerate(sheet_rows[1:], start=2):
                values = {
                    header: value
                    for header, value in zip(headers, cells)
                    if header
                }
                if all(is_blank(value) for value in values.values()):
                    continue
                yield RawRow(row=row_number, values=values, sheet=sheet_name)

    def _parse_csv(self, content: bytes) -> Iterator[RawRow]:
        try:
            text = content.decode('utf-8-sig')
        except UnicodeDecodeError as e:
            raise FileUnreadableError(f"File is not valid UTF-8 text: {e}", file_type='csv') from e

        reader = csv.DictReader(io.StringIO(text, newline=''))
        try:
            fieldnames = reader.fieldnames
        except csv.Error as e:
            raise FileUnreadableError(f"Could not read CSV header: {e}", file_type='csv') from e

        if not fieldnames or all(is_blank(name) for name in fieldnames):
            raise FileUnreadableError("File has no header row", file_type='csv')

        rows = []
        try:
            # Records are numbered as displayed in a spreadsheet (header is row 1);
            # blank records still use up their number
            for row_number, record in enumerate(reader, start=2):
                values = {
                    header.strip(): value
                    for header, value in record.items()
                    if header is not None and header.strip()
                }
                if all(is_blank(value) for value in values.values()):
                    continue
                rows.append(RawRow(row=row_number, values=values))
        except csv.Error as e:
            raise FileUnreadableError(f"Malformed CSV at line {reader.line_num}: {e}", file_type='csv') from e

        return iter(rows)

    def _in_period(self, row: RawRow) -> bool:
        return self.period.contains(parse_date(row.get('start_date')), parse_date(row.get('end_date')))
