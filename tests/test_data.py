import numpy as np
import pandas as pd
import pytest

from wle_har.data import FeatureSchema, SchemaError, load_table


def test_load_table_maps_missing_tokens(wle_csvs):
    training_path, _ = wle_csvs

    df = load_table(str(training_path))

    assert df.columns[0] == 'X'
    assert df['kurtosis_roll_belt'].dtype == np.float64
    assert np.isnan(df.loc[1, 'kurtosis_roll_belt'])   # '#DIV/0!'
    assert np.isnan(df.loc[3, 'pitch_belt'])           # 'NA'
    assert df.loc[0, 'kurtosis_roll_belt'] == 1.5


def test_load_table_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_table(str(tmp_path / "nope.csv"))


def test_schema_from_query_drops_empty_and_bookkeeping_columns(query_raw):
    schema = FeatureSchema.from_query(query_raw)

    assert schema.columns == ('user_name', 'raw_timestamp_part_1', 'roll_belt', 'pitch_belt', 'total_accel_belt')
    assert schema.feature_columns == ['raw_timestamp_part_1', 'roll_belt', 'pitch_belt', 'total_accel_belt']
    assert len(schema.columns) == 5


def test_schema_never_contains_outcome(reference_raw):
    schema = FeatureSchema.from_query(reference_raw)

    assert 'classe' not in schema.columns


def test_schema_requires_subject_column(query_raw):
    with pytest.raises(SchemaError, match="user_name"):
        FeatureSchema.from_query(query_raw.drop(columns=['user_name']))


def test_schema_validate_reports_missing_columns(query_raw):
    schema = FeatureSchema.from_query(query_raw)
    table = pd.DataFrame({'user_name': ['pedro'], 'roll_belt': [1.0]})

    assert schema.missing_from(table) == ['raw_timestamp_part_1', 'pitch_belt', 'total_accel_belt']
    with pytest.raises(SchemaError):
        schema.validate(table)
