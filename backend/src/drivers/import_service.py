"""Driver CSV import: parse, validate all rows, then submit sequentially.

Submission goes through a driver-creation callable (DriverDocsClient.create_driver
or a local DriverService wrapper) one row at a time, because the plan's driver
limit is enforced by that call and changes as rows are created.
"""

import io
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Union

import pandas as pd

from domain.errors import CsvImportError, DomainError, QuotaError
from .schemas import EMAIL_RE, FailedRow, ImportResult

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["firstName", "lastName", "email", "phone", "location", "employeeId"]

CreateDriverFn = Callable[[dict[str, str]], Awaitable[Any]]


@dataclass
class ValidatedRow:
    """One CSV data row with its validation outcome"""
    raw_fields: dict[str, str]
    row_number: int
    errors: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            "rowNumber": self.row_number,
            "data": self.raw_fields,
            "valid": self.valid,
            "errors": self.errors,
        }


def csv_template() -> str:
    """Header plus one example row"""
    example = pd.DataFrame(
        [["Jane", "Doe", "jane.doe@example.com", "+1 555 0100", "Depot North", "EMP-001"]],
        columns=REQUIRED_COLUMNS,
    )
    return example.to_csv(index=False)


class BulkImporter:
    """Validates and sequentially submits driver rows from a CSV file"""

    def parse_csv(self, content: Union[str, bytes]) -> pd.DataFrame:
        """
        Parse CSV content into a DataFrame of strings.

        Raises:
            CsvImportError: Empty, malformed or non-UTF-8 file, or required columns missing
        """
        if isinstance(content, bytes):
            try:
                content = content.decode("utf-8-sig")
            except UnicodeDecodeError as e:
                raise CsvImportError(
                    "CSV file is not valid UTF-8",
                    details={"byteOffset": e.start},
                )
        try:
            df = pd.read_csv(io.StringIO(content), dtype=str, keep_default_na=False)
        except pd.errors.EmptyDataError:
            raise CsvImportError("CSV file is empty")
        except pd.errors.ParserError as e:
            raise CsvImportError(f"CSV parsing error: {str(e)}")

        df.columns = [str(c).strip() for c in df.columns]
        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise CsvImportError(
                f"Missing required columns: {', '.join(missing)}",
                details={"missingColumns": missing},
            )
        if df.empty:
            raise CsvImportError("CSV file has no data rows")
        return df

    def validate_row(self, raw_fields: dict[str, str], row_number: int) -> ValidatedRow:
        row = ValidatedRow(raw_fields=raw_fields, row_number=row_number)
        for column in REQUIRED_COLUMNS:
            if not raw_fields.get(column, "").strip():
                row.errors.append(f"Missing required field '{column}'")
        email = raw_fields.get("email", "").strip()
        if email and not EMAIL_RE.match(email):
            row.errors.append(f"Invalid email address '{email}'")
        return row

    def validate_rows(self, df: pd.DataFrame) -> list[ValidatedRow]:
        """Validate every row. Row numbers count the header as row 1."""
        rows = []
        for index, series in df.iterrows():
            raw_fields = {column: str(series.get(column, "")).strip() for column in REQUIRED_COLUMNS}
            rows.append(self.validate_row(raw_fields, row_number=int(index) + 2))
        return rows

    def prepare(self, content: Union[str, bytes]) -> list[ValidatedRow]:
        """
        Parse and validate a whole file.

        Raises:
            CsvImportError: Batch-level problem, or at least one invalid row
                (details.rows lists the invalid rows)
        """
        rows = self.validate_rows(self.parse_csv(content))
        invalid = [r for r in rows if not r.valid]
        if invalid:
            raise CsvImportError(
                f"{len(invalid)} row(s) have errors. Fix them and upload the file again.",
                details={"rows": [r.to_dict() for r in invalid]},
            )
        return rows

    async def submit(self, rows: list[ValidatedRow], create_driver: CreateDriverFn) -> ImportResult:
        """
        Create drivers one row at a time.

        A QuotaError stops the import: the current row and every row not yet
        attempted fail with LIMIT_REACHED. Other domain errors fail only their
        own row.
        """
        if any(not r.valid for r in rows):
            raise CsvImportError("Cannot submit rows that failed validation")

        result = ImportResult()
        for position, row in enumerate(rows):
            try:
                created = await create_driver(row.raw_fields)
            except QuotaError as e:
                result.limit_reached = True
                for pending in rows[position:]:
                    result.failed.append(FailedRow(
                        row_number=pending.row_number,
                        data=pending.raw_fields,
                        reason="LIMIT_REACHED",
                        error=e.message,
                    ))
                logger.warning(
                    f"Driver import stopped at row {row.row_number}: {e.message} "
                    f"({len(rows) - position} row(s) not created)"
                )
                break
            except DomainError as e:
                result.failed.append(FailedRow(
                    row_number=row.row_number,
                    data=row.raw_fields,
                    reason="ERROR",
                    error=e.message,
                ))
                logger.warning(f"Driver import row {row.row_number} failed: {e.message}")
                continue

            result.successful.append(created)

        logger.info(
            f"Driver import finished: successful={len(result.successful)}, "
            f"failed={len(result.failed)}, limit_reached={result.limit_reached}"
        )
        return result

    async def run(self, content: Union[str, bytes], create_driver: CreateDriverFn) -> ImportResult:
        """Parse, validate and submit"""
        return await self.submit(self.prepare(content), create_driver)
