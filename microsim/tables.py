"""
Tabular population of agents and parameters.

A table is a rectangular matrix of strings whose first row is a header.

Agent tables carry a ``#`` column giving how many agents each row creates;
every other column names a state and its value is written into component 0
of that state for each created agent:

    #,sex,dob
    3,0,1970
    2,1,1985

Parameter tables have one column per parameter name; going down a column,
each non-blank cell becomes the next component of that parameter.

Both are validated completely (``plan_*``) before the Simulation applies
anything, so a malformed table leaves the Simulation untouched.
"""

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Sequence, Tuple, Union

from .errors import ConfigurationError
from .names import NameRegistry

logger = logging.getLogger(__name__)

COUNT_COLUMN = "#"

Matrix = Sequence[Sequence[str]]


def read_table(path: Union[str, Path], delimiter: str = ",") -> List[List[str]]:
    """Read a delimited text file into a matrix of stripped strings.

    Blank lines are dropped.

    Raises:
        ConfigurationError: If the file cannot be opened or read
    """
    try:
        with open(path, "r", newline="", encoding="utf-8") as f:
            rows = [[cell.strip() for cell in row] for row in csv.reader(f, delimiter=delimiter)]
    except OSError as e:
        raise ConfigurationError(f"Can't open table file {path}: {e}") from e
    except csv.Error as e:
        raise ConfigurationError(f"Error reading table file {path}: {e}") from e
    return [row for row in rows if any(cell for cell in row)]


def _parse_real(cell: str, row: int, column: str) -> float:
    try:
        return float(cell)
    except ValueError:
        raise ConfigurationError(
            f"row {row}, column '{column}': '{cell}' is not a number"
        ) from None


def _header(matrix: Matrix) -> List[str]:
    if not matrix:
        raise ConfigurationError("table is empty (no header row)")
    return [str(cell).strip() for cell in matrix[0]]


def convert_rows(matrix: Matrix, strict: bool = True) -> List[List[float]]:
    """Convert every data row (all rows after the header) to floats.

    With ``strict`` every row must have as many cells as the header.
    """
    header = _header(matrix)
    converted = []
    for r, row in enumerate(matrix[1:], start=1):
        if strict and len(row) != len(header):
            raise ConfigurationError(
                f"row {r} has {len(row)} entries, header has {len(header)}"
            )
        converted.append([
            _parse_real(cell, r, header[c] if c < len(header) else str(c))
            for c, cell in enumerate(row)
        ])
    return converted


# ============================================================================
# AGENT TABLES
# ============================================================================

@dataclass
class AgentRow:
    count: int
    states: List[Tuple[int, float]]


def plan_agent_rows(matrix: Matrix, state_names: NameRegistry, strict: bool = True) -> List[AgentRow]:
    """Validate an agent table and resolve its columns to state ids."""
    header = _header(matrix)

    count_columns = [c for c, name in enumerate(header) if name == COUNT_COLUMN]
    if not count_columns:
        raise ConfigurationError(f"agent table has no '{COUNT_COLUMN}' column")
    if len(count_columns) > 1:
        raise ConfigurationError(f"agent table has more than one '{COUNT_COLUMN}' column")
    count_col = count_columns[0]

    state_cols = []
    seen = set()
    for c, name in enumerate(header):
        if c == count_col:
            continue
        if name in seen:
            raise ConfigurationError(f"agent table names '{name}' more than once")
        seen.add(name)
        state_cols.append((c, state_names.require_id(name), name))

    plan = []
    for r, row in enumerate(matrix[1:], start=1):
        if strict and len(row) != len(header):
            raise ConfigurationError(
                f"agent table row {r} has {len(row)} entries, header has {len(header)}"
            )
        if count_col >= len(row):
            raise ConfigurationError(f"agent table row {r} has no '{COUNT_COLUMN}' value")

        count_value = _parse_real(str(row[count_col]).strip(), r, COUNT_COLUMN)
        if count_value < 0 or not count_value.is_integer():
            raise ConfigurationError(
                f"row {r}: '{COUNT_COLUMN}' must be a non-negative integer, got {row[count_col]}"
            )

        states = []
        for c, state_id, name in state_cols:
            cell = str(row[c]).strip() if c < len(row) else ""
            if cell == "":
                if strict:
                    raise ConfigurationError(f"row {r}: missing value for state '{name}'")
                continue
            states.append((state_id, _parse_real(cell, r, name)))
        plan.append(AgentRow(count=int(count_value), states=states))

    logger.debug(f"Agent table planned: {len(plan)} rows, {sum(p.count for p in plan)} agents")
    return plan


# ============================================================================
# PARAMETER TABLES
# ============================================================================

def plan_parameter_columns(matrix: Matrix, parameter_names: NameRegistry,
                           strict: bool = True) -> Dict[int, List[float]]:
    """Validate a parameter table and collect each column's components.

    Blank cells are skipped, so columns may have different lengths.
    """
    header = _header(matrix)

    ids = []
    seen = set()
    for name in header:
        if name in seen:
            raise ConfigurationError(f"parameter table names '{name}' more than once")
        seen.add(name)
        ids.append(parameter_names.require_id(name))

    columns: Dict[int, List[float]] = {i: [] for i in ids}
    for r, row in enumerate(matrix[1:], start=1):
        if strict and len(row) != len(header):
            raise ConfigurationError(
                f"parameter table row {r} has {len(row)} entries, header has {len(header)}"
            )
        for c, cell in enumerate(row[:len(header)]):
            cell = str(cell).strip()
            if cell == "":
                continue
            columns[ids[c]].append(_parse_real(cell, r, header[c]))

    logger.debug(f"Parameter table planned: {len(ids)} parameters")
    return columns
