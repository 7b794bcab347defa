"""
Grid view of a cell store.

Lays the rendered content of each cell out in a pandas DataFrame: columns
are column labels (A, B, ...), the index holds 1-based row numbers.
"""

from typing import Any, Dict, List, Mapping

import numpy as np
import pandas as pd

from .cells import CellData
from .references import format_column_label, parse_cell_reference


def cells_to_frame(cells: Mapping[str, CellData]) -> pd.DataFrame:
    """Build a DataFrame covering A1 up to the last used row and column."""
    positions = {}
    for cell_id, cell in cells.items():
        ref = parse_cell_reference(cell_id)
        if ref is None or ref.row < 0:
            continue
        positions[(ref.row, ref.col)] = cell.rendered

    if not positions:
        return pd.DataFrame()

    num_rows = max(row for row, _ in positions) + 1
    num_cols = max(col for _, col in positions) + 1

    grid = np.full((num_rows, num_cols), '', dtype=object)
    for (row, col), text in positions.items():
        grid[row, col] = text

    return pd.DataFrame(
        grid,
        columns=[format_column_label(col) for col in range(num_cols)],
        index=pd.RangeIndex(1, num_rows + 1, name='row'),
    )


def frame_preview(frame: pd.DataFrame, rows: int = 20) -> List[Dict[str, Any]]:
    """First rows of a grid as JSON-safe dicts, blanks as ''."""
    preview = []
    for row_number, row in frame.head(rows).iterrows():
        row_dict = {'row': int(row_number)}
        for col in frame.columns:
            value = row[col]
            row_dict[col] = '' if value is None or (isinstance(value, float) and pd.isna(value)) else str(value)
        preview.append(row_dict)
    return preview
