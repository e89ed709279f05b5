import logging
from typing import Any, Literal, Optional, Sequence

import pandas as pd
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from rapidfuzz import fuzz, process
from typing_extensions import Self

from formula_engine.columns import DEFAULT_COLUMNS, Column
from formula_engine.interpreter import FormulaEngine, Row
from formula_engine.utils import column_letter


def remove_illegal_characters(df: pd.DataFrame) -> pd.DataFrame:
    """Strip the control characters openpyxl refuses to write to a cell."""
    for col in df.columns:
        if df[col].dtype == object:  # Only process string columns
            df[col] = df[col].map(
                lambda v: ILLEGAL_CHARACTERS_RE.sub("", v) if isinstance(v, str) else v
            )

    return df


def missing_to_none(value: Any) -> Any:
    if isinstance(value, float) and pd.isna(value):
        return None
    return None if value is pd.NaT or value is pd.NA else value


class RowReader:
    """Converts between data frames and rows keyed by column id.

    Headers are matched to columns by id, then by label ignoring case, then
    by the closest label when it scores at least `similarity`.
    """

    def __init__(
        self, columns: Sequence[Column] = DEFAULT_COLUMNS, similarity: float = 0.9
    ) -> None:
        self.columns = tuple(columns)
        self.similarity = similarity
        self.labels: dict[str, Column] = {}
        for column in self.columns:
            self.labels[column.label.lower()] = column
        # For performance
        self.label_keys = list(self.labels.keys())

    @classmethod
    def for_engine(cls, engine: FormulaEngine, similarity: float = 0.9) -> Self:
        return cls(engine.columns, similarity=similarity)

    def find_column(self, header: str, similarity: Optional[float] = None) -> Column:
        column = self.find_column_optional(header, similarity=similarity)
        if column is None:
            raise ValueError(
                f"Column {header!r} not found (similarity = {similarity or self.similarity})"
            )
        return column

    def find_column_optional(
        self, header: str, similarity: Optional[float] = None
    ) -> Optional[Column]:
        similarity = self.similarity if similarity is None else similarity
        key = str(header).strip()
        for column in self.columns:
            if column.id == key:
                return column
        if key.lower() in self.labels:
            return self.labels[key.lower()]

        match = process.extractOne(
            key.lower(), self.label_keys, scorer=fuzz.ratio, score_cutoff=similarity * 100
        )
        if match is None:
            return None
        logging.debug(f"Matched header {header!r} to column {match[0]!r} ({match[1]:.0f})")
        return self.labels[match[0]]

    def read_df(self, df: pd.DataFrame) -> list[dict[str, Any]]:
        """Read a data frame into rows keyed by column id.

        Unknown headers are skipped. Values are stored as they are, except
        that missing values become None.
        """
        mapping: dict[Any, Column] = {}
        for header in df.columns:
            column = self.find_column_optional(str(header))
            if column is None:
                logging.warning(f"Skipping unknown column {header!r}")
                continue
            mapping[header] = column

        rows: list[dict[str, Any]] = []
        for record in df.to_dict(orient="records"):
            rows.append(
                {column.id: missing_to_none(record[header]) for header, column in mapping.items()}
            )
        return rows

    def to_df(
        self,
        rows: Sequence[Row],
        engine: Optional[FormulaEngine] = None,
        header: Literal["label", "letter", "id"] = "label",
        clean: bool = False,
    ) -> pd.DataFrame:
        """Build a data frame from rows, one frame column per column.

        With an `engine`, formulas are replaced by their values.
        """
        data = []
        for row in rows:
            values = [row.get(column.id) for column in self.columns]
            if engine is not None:
                values = [engine.evaluate(value, rows) for value in values]
            data.append(values)

        if header == "letter":
            names = [column_letter(i) for i in range(len(self.columns))]
        elif header == "id":
            names = [column.id for column in self.columns]
        else:
            names = [column.label for column in self.columns]

        df = pd.DataFrame(data, columns=names)
        return remove_illegal_characters(df) if clean else df
