"""
Atomic CSV Storage

Implements the "write-and-rename" pattern for data integrity.
An existing CSV at the destination is only ever replaced by a complete file.
"""
import logging
import os
import uuid
from datetime import date
from pathlib import Path
from typing import List, Mapping, Optional, Union

import pandas as pd

from .config import OUTPUT_DIR
from .flatten import CSV_COLUMNS

logger = logging.getLogger(__name__)


def get_output_path(station_id: str, start: date, end: date,
                    base_dir: Optional[Path] = None) -> Path:
    """
    Generate the output path for a station CSV.

    Pattern: {base_dir}/{station_id}_{YYYYMMDD}_{YYYYMMDD}.csv

    Args:
        station_id: CODiS station ID (e.g., "C0A520")
        start: First day of the requested range
        end: Last day of the requested range
        base_dir: Output directory (default: from config, the working directory)
    """
    if base_dir is None:
        base_dir = OUTPUT_DIR

    filename = f"{station_id}_{start.strftime('%Y%m%d')}_{end.strftime('%Y%m%d')}.csv"
    return Path(base_dir) / filename


def records_to_frame(records: List[Mapping[str, str]]) -> pd.DataFrame:
    """
    Arrange records into the fixed column layout.

    Keys outside CSV_COLUMNS are dropped, missing ones become "".
    """
    rows = [[record.get(column, "") for column in CSV_COLUMNS] for record in records]
    return pd.DataFrame(rows, columns=CSV_COLUMNS, dtype=object)


def write_records_csv(records: List[Mapping[str, str]], final_path: Union[str, Path]) -> Path:
    """
    Atomically write records to a CSV file using write-and-rename.

    The header is always written, also for an empty record list.
    An existing file at final_path is overwritten.

    Args:
        records: Flattened observation records
        final_path: Destination CSV path

    Returns:
        The destination path

    Raises:
        OSError: If the file cannot be written (temp file is cleaned up)
    """
    final_path = Path(final_path)
    final_path.parent.mkdir(parents=True, exist_ok=True)

    # Same directory so the rename stays on one filesystem
    temp_path = final_path.parent / f"{final_path.name}.{uuid.uuid4().hex[:8]}.tmp"

    frame = records_to_frame(records)

    try:
        frame.to_csv(temp_path, index=False, encoding="utf-8", lineterminator="\n")
        os.replace(temp_path, final_path)
    except Exception:
        if temp_path.exists():
            try:
                temp_path.unlink()
            except OSError as cleanup_error:
                logger.warning(f"Could not remove temp file {temp_path}: {cleanup_error}")
        raise

    logger.debug(f"Wrote {len(frame)} rows to {final_path}")
    return final_path
