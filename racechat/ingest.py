"""Spreadsheet and CSV ingestion: readable text for prompts, plain records for storage."""

import io
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import pandas as pd

from racechat.errors import ParseError

logger = logging.getLogger(__name__)

CSV_EXTENSIONS = {".csv"}
EXCEL_EXTENSIONS = {".xlsx", ".xls"}
SEPARATOR = "=" * 50
RULE = "-" * 50


def file_extension(file_name: str) -> str:
    return Path(file_name).suffix.lower()


def _read_frames(file_bytes: bytes, file_name: str) -> Dict[str, pd.DataFrame]:
    extension = file_extension(file_name)
    if extension not in CSV_EXTENSIONS | EXCEL_EXTENSIONS:
        raise ParseError(f"Unsupported file type: {extension.lstrip('.') or file_name}")

    try:
        if extension in CSV_EXTENSIONS:
            return {Path(file_name).stem: pd.read_csv(io.BytesIO(file_bytes))}
        return pd.read_excel(io.BytesIO(file_bytes), sheet_name=None)
    except pd.errors.EmptyDataError:
        return {Path(file_name).stem: pd.DataFrame()}
    except Exception as e:
        raise ParseError(f"Failed to parse {file_name}: {e}") from e


def _cell(value: Any) -> Any:
    return "" if pd.isna(value) else value


def _frame_to_text(df: pd.DataFrame) -> str:
    if df.empty and len(df.columns) == 0:
        return "  (Empty sheet)\n"

    headers = [str(col) for col in df.columns]
    lines = [f"Headers: {' | '.join(headers)}", RULE]
    for row_number, row in enumerate(df.itertuples(index=False), start=1):
        pairs = ", ".join(f"{header}: {_cell(value)}" for header, value in zip(headers, row))
        lines.append(f"Row {row_number}: {pairs}")
    lines.append("")
    lines.append(f"📈 Summary: {len(df)} data rows (excluding header)")
    return "\n".join(lines) + "\n"


def parse_file(file_bytes: bytes, file_name: str) -> str:
    frames = _read_frames(file_bytes, file_name)
    is_csv = file_extension(file_name) in CSV_EXTENSIONS

    if is_csv:
        text = f"📊 CSV File: {file_name}\n\n{SEPARATOR}\n"
        text += _frame_to_text(next(iter(frames.values())))
    else:
        text = f"📊 Excel File: {file_name}\n\n"
        for index, (sheet_name, df) in enumerate(frames.items(), start=1):
            text += f"\n{SEPARATOR}\nSheet {index}: {sheet_name}\n{SEPARATOR}\n\n"
            text += _frame_to_text(df)

    logger.info(f"Parsed file {file_name} | sheets={len(frames)} | characters={len(text)}")
    return text


def _plain_value(value: Any) -> Any:
    # numeric columns with blanks are read as float64
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def read_records(file_bytes: bytes, file_name: str, sheet_name: Union[int, str] = 0) -> List[Dict[str, Any]]:
    """Rows of one sheet as plain dicts; empty cells become ``None``."""
    frames = _read_frames(file_bytes, file_name)
    if isinstance(sheet_name, int):
        sheets = list(frames.values())
        if sheet_name >= len(sheets):
            raise ParseError(f"{file_name} has no sheet at index {sheet_name}")
        df = sheets[sheet_name]
    else:
        if sheet_name not in frames:
            raise ParseError(f"{file_name} has no sheet named {sheet_name!r}")
        df = frames[sheet_name]

    df = df.astype(object).where(pd.notna(df), None)
    df.columns = [str(col) for col in df.columns]
    return [{name: _plain_value(value) for name, value in row.items()} for row in df.to_dict(orient="records")]
