from typing import Dict, Tuple

import numpy as np
import pandas as pd

from wle_har.constants import REFERENCE, VALID_DTYPES
from wle_har.data import FeatureSchema, SchemaError, ImputationError


def widen_integer_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Convert every integer column to float64 so both tables share column types."""
    df = df.copy()
    for col in df.columns:
        if pd.api.types.is_integer_dtype(df[col]):
            df[col] = df[col].astype(np.float64)
    return df


def impute_column_means(df: pd.DataFrame) -> Tuple[pd.DataFrame, Dict[str, float]]:
    """
    Replace the missing entries of each column with the mean of its observed entries.

    Args:
        df: table of numeric columns
    Returns:
        df: imputed copy
        fill_values: mapping from column name to the mean used
    """
    df = df.copy()
    fill_values = {}
    for col in df.columns:
        if not pd.api.types.is_numeric_dtype(df[col]) or pd.api.types.is_bool_dtype(df[col]):
            raise SchemaError(f"Column '{col}' is not numeric (dtype {df[col].dtype})")

        observed = df[col].dropna()
        if observed.empty:
            raise ImputationError(f"Column '{col}' has no observed values to impute from")

        col_mean = float(observed.mean())
        fill_values[col] = col_mean
        df[col] = df[col].fillna(col_mean)

    return df, fill_values


def preprocess_data(df: pd.DataFrame, dtype: str, schema: FeatureSchema) -> pd.DataFrame:
    """
    Restrict a raw table to the schema columns, normalize numeric types and
    impute missing values.

    The subject column is set aside during imputation and re-attached as a
    categorical column. For the reference table the outcome column is kept
    aside the same way and re-attached last.

    Args:
        df: raw table
        dtype: 'reference' (labelled) or 'query' (unlabelled)
        schema: columns to keep
    Returns:
        cleaned copy of `df`
    """
    if dtype not in VALID_DTYPES:
        raise ValueError(f"dtype must be one of {VALID_DTYPES}, got '{dtype}'")

    is_reference = dtype == REFERENCE
    schema.validate(df, require_outcome=is_reference)

    if is_reference:
        tmp_outcome = df[schema.outcome_col].astype('category')

    nd = df[list(schema.columns)].copy()

    tmp_subject = nd.pop(schema.subject_col).astype('category')

    nd = widen_integer_columns(nd)
    nd, _ = impute_column_means(nd)

    nd[schema.subject_col] = tmp_subject
    if is_reference:
        nd[schema.outcome_col] = tmp_outcome

    return nd
