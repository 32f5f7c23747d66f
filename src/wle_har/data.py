from dataclasses import dataclass
from typing import List, Tuple, Iterable
import os

import pandas as pd

from wle_har.constants import NA_VALUES, SUBJECT_COL, OUTCOME_COL, NON_FEATURE_COLS


class SchemaError(ValueError):
    """A table does not match the feature schema it is used with."""


class ImputationError(ValueError):
    """A column has no observed values to compute a fill value from."""


def load_table(file_path: str, na_values: List[str] = NA_VALUES) -> pd.DataFrame:
    """
    Read a delimited sensor table, mapping every token in `na_values`
    to missing. Only the listed tokens are treated as missing.

    A leading column with an empty header (the row index written out
    alongside the data) is named 'X'.
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Input table not found: {file_path}")
    df = pd.read_csv(file_path, na_values=na_values, keep_default_na=False)
    if len(df.columns) and str(df.columns[0]).startswith('Unnamed: 0'):
        df = df.rename(columns={df.columns[0]: 'X'})
    return df


@dataclass(frozen=True)
class FeatureSchema:
    """
    Columns a prepared table must carry, in order. `columns` holds the
    subject column and the numeric feature columns but never the outcome.
    """
    columns: Tuple[str, ...]
    subject_col: str = SUBJECT_COL
    outcome_col: str = OUTCOME_COL

    @classmethod
    def from_query(cls, query: pd.DataFrame, drop_columns: Iterable[str] = NON_FEATURE_COLS,
                   subject_col: str = SUBJECT_COL, outcome_col: str = OUTCOME_COL) -> 'FeatureSchema':
        """
        Derive the schema from the query table: keep the columns that are not
        entirely missing, minus the known non-feature columns.
        """
        drop = set(drop_columns) | {outcome_col}
        observed = query.columns[query.notna().any(axis=0)]
        columns = tuple(col for col in observed if col not in drop)

        if subject_col not in columns:
            raise SchemaError(f"Subject column '{subject_col}' missing or empty in the query table")
        if len(columns) < 2:
            raise SchemaError("Query table has no usable feature columns")

        return cls(columns=columns, subject_col=subject_col, outcome_col=outcome_col)

    @property
    def feature_columns(self) -> List[str]:
        return [col for col in self.columns if col != self.subject_col]

    def missing_from(self, table: pd.DataFrame) -> List[str]:
        return [col for col in self.columns if col not in table.columns]

    def validate(self, table: pd.DataFrame, require_outcome: bool = False):
        missing = self.missing_from(table)
        if require_outcome and self.outcome_col not in table.columns:
            missing.append(self.outcome_col)
        if missing:
            raise SchemaError(f"Table is missing schema columns: {missing}")
