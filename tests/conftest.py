import numpy as np
import pandas as pd
import pytest

from wle_har.config import Config, DataConfig, TrainConfig, BaggingConfig, OutputPathsConfig
from wle_har.constants import CLASSES

SUBJECTS = ['adelmo', 'carlitos', 'charles', 'eurico', 'jeremy', 'pedro']


def make_wle_table(n_rows, rng, labelled=True):
    """Small table shaped like the WLE csv files: index, subject, timestamps, sensors."""
    labels = np.array([CLASSES[i % len(CLASSES)] for i in range(n_rows)])
    offsets = np.array([CLASSES.index(label) for label in labels], dtype=float)
    df = pd.DataFrame({
        'X': np.arange(1, n_rows + 1),
        'user_name': [SUBJECTS[i % len(SUBJECTS)] for i in range(n_rows)],
        'raw_timestamp_part_1': rng.integers(1322489729, 1323095002, n_rows),
        'cvtd_timestamp': ['05/12/2011 11:23'] * n_rows,
        'new_window': ['no'] * n_rows,
        'num_window': rng.integers(1, 864, n_rows),
        'roll_belt': offsets * 20 + rng.normal(0, 1, n_rows),
        'pitch_belt': rng.normal(0, 1, n_rows),
        'total_accel_belt': rng.integers(0, 30, n_rows),
        'kurtosis_roll_belt': [np.nan] * n_rows,
    })
    if labelled:
        df['classe'] = labels
    else:
        df['problem_id'] = np.arange(1, n_rows + 1)
    return df


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def reference_raw(rng):
    df = make_wle_table(200, rng)
    # sparse summary column, observed only at window boundaries
    df.loc[::50, 'kurtosis_roll_belt'] = 1.5
    df.loc[3, 'pitch_belt'] = np.nan
    return df


@pytest.fixture
def query_raw(rng):
    return make_wle_table(20, rng, labelled=False)


@pytest.fixture
def wle_csvs(tmp_path, reference_raw, query_raw):
    """Write both tables the way the published files look: unnamed index, NA and #DIV/0! tokens."""
    training = reference_raw.rename(columns={'X': ''}).astype({'kurtosis_roll_belt': object})
    training.loc[1, 'kurtosis_roll_belt'] = '#DIV/0!'
    training_path = tmp_path / "pml-training.csv"
    testing_path = tmp_path / "pml-testing.csv"
    training.to_csv(training_path, index=False, na_rep='NA')
    query_raw.rename(columns={'X': ''}).to_csv(testing_path, index=False, na_rep='NA')
    return training_path, testing_path


@pytest.fixture
def small_config(tmp_path, wle_csvs):
    training_path, testing_path = wle_csvs
    return Config(
        output_paths=OutputPathsConfig(base_path=str(tmp_path / "output"), run_id="test"),
        data=DataConfig(training_csv=str(training_path), testing_csv=str(testing_path)),
        train=TrainConfig(random_seed=1234, folds=5, tune_length=3, verbose_iter=False),
        bagging=BaggingConfig(n_estimators=5),
    )
