import io
import math
import os
import uuid
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd
from loguru import logger

from models.dataset_models import Dataset, Row, Scalar

SUPPORTED_EXTENSIONS = [".csv", ".xlsx", ".xls"]


def new_dataset_id() -> str:
    return f"dataset_{uuid.uuid4().hex}"


def to_scalar(value: Any) -> Scalar:
    """Normalise a pandas / JSON cell into the Number | Text | Null union."""
    if value is None:
        return None
    if isinstance(value, (bool, np.bool_)):
        return str(bool(value))
    if isinstance(value, (np.integer,)):
        return int(value)
    if isinstance(value, (np.floating, float)):
        number = float(value)
        return None if math.isnan(number) else number
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return value
    if value is pd.NaT:
        return None
    if isinstance(value, (pd.Timestamp, datetime, date)):
        return value.isoformat()
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return str(value)


def observed_columns(rows: Iterable[Dict[str, Any]]) -> List[str]:
    """Union of row keys in first-seen order."""
    seen: Dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(str(key), None)
    return list(seen)


def normalize_rows(rows: Iterable[Dict[str, Any]], columns: List[str]) -> List[Row]:
    """Every row carries exactly `columns`; absent keys become None."""
    return [{col: to_scalar(row.get(col)) for col in columns} for row in rows]


def dataset_from_rows(
    name: str,
    rows: List[Dict[str, Any]],
    columns: Optional[List[str]] = None,
    description: str = "",
    dataset_id: Optional[str] = None,
) -> Dataset:
    if columns is None:
        columns = observed_columns(rows)
    else:
        columns = list(dict.fromkeys(str(c) for c in columns))
    return Dataset(
        id=dataset_id or new_dataset_id(),
        name=name,
        description=description,
        columns=columns,
        rows=normalize_rows(rows, columns),
    )


def dataset_from_dataframe(name: str, df: pd.DataFrame) -> Dataset:
    columns = [str(c) for c in df.columns]
    df = df.copy()
    df.columns = columns
    records = df.to_dict(orient="records")
    return dataset_from_rows(name, records, columns=columns)


def load_tabular_file(file_name: str, content: bytes) -> List[Dataset]:
    """
    Parse an uploaded CSV or Excel file. CSV gives one dataset; Excel gives
    one dataset per sheet, named "<file>:<sheet>".
    """
    ext = os.path.splitext(file_name)[1].lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise ValueError("Only CSV and Excel files (.csv, .xlsx, .xls) are supported.")

    base_name = os.path.splitext(os.path.basename(file_name))[0]

    if ext == ".csv":
        try:
            df = pd.read_csv(io.BytesIO(content), skip_blank_lines=True)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            raise ValueError(f"Could not parse CSV: {e}") from e
        logger.info("Loaded CSV '{}' with {} rows", file_name, len(df))
        return [dataset_from_dataframe(base_name, df)]

    try:
        xls = pd.ExcelFile(io.BytesIO(content))
    except (ValueError, OSError) as e:
        raise ValueError(f"Could not read Excel file: {e}") from e

    datasets: List[Dataset] = []
    for sheet_name in xls.sheet_names:
        df = xls.parse(sheet_name)
        datasets.append(dataset_from_dataframe(f"{base_name}:{sheet_name}", df))
        logger.info("Loaded sheet '{}' of '{}' with {} rows", sheet_name, file_name, len(df))
    return datasets


def dataset_to_csv(dataset: Dataset) -> str:
    if not dataset.rows:
        return ""
    df = pd.DataFrame(dataset.rows, columns=dataset.columns)
    return df.to_csv(index=False)
