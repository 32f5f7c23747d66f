from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Literal, Sequence

import numpy as np
import pandas as pd
from sklearn.tree import DecisionTreeClassifier
from sklearn.ensemble import BaggingClassifier
from sklearn.model_selection import StratifiedKFold, GridSearchCV
from sklearn.metrics import make_scorer, cohen_kappa_score

from wle_har.constants import N_FOLDS, TUNE_LENGTH, N_BAGS, ANSI_BLUE, ANSI_RESET
from wle_har.data import FeatureSchema, SchemaError

VALID_METHODS = ('rpart', 'treebag')
VALID_METHOD_TYPE = Literal['rpart', 'treebag']


def build_design_matrix(table: pd.DataFrame, schema: FeatureSchema, subject_levels: Sequence[str]) -> pd.DataFrame:
    """
    Numeric feature columns followed by one indicator column per subject level.
    Levels come from the reference table so that every matrix built against
    the same levels has the same columns.
    """
    schema.validate(table)
    numeric = table[schema.feature_columns].astype(np.float64)

    subject_raw = table[schema.subject_col].astype(str)
    unknown = sorted(set(subject_raw) - set(subject_levels))
    if unknown:
        raise SchemaError(f"Unknown {schema.subject_col} values: {unknown}")

    subject = pd.Categorical(subject_raw, categories=list(subject_levels))
    dummies = pd.get_dummies(subject, prefix=schema.subject_col, dtype=np.float64)
    dummies.index = table.index

    return pd.concat([numeric, dummies], axis=1)


def make_folds(y, n_folds: int = N_FOLDS, random_state=None) -> List[tuple]:
    """
    Split row positions into `n_folds` disjoint, class-stratified validation folds.
    Returns a list of (train_idx, val_idx) pairs.
    """
    y = np.asarray(y)
    skf = StratifiedKFold(n_splits=n_folds, shuffle=True, random_state=random_state)
    return list(skf.split(np.zeros(len(y)), y))


@dataclass
class TrainControl:
    method: Literal['cv', 'none'] = 'cv'
    number: int = N_FOLDS
    verbose_iter: bool = True

    def __post_init__(self):
        if self.method not in {'cv', 'none'}:
            raise ValueError("method must be one of {'cv', 'none'}")
        if self.method == 'cv' and self.number < 2:
            raise ValueError("number of folds must be at least 2")


@dataclass
class TrainResult:
    model: Any
    method: str
    best_params: Dict[str, Any]
    classes: List[str]
    feature_columns: List[str]
    results: Optional[pd.DataFrame] = None
    accuracy: Optional[float] = None
    kappa: Optional[float] = None
    folds: List[tuple] = field(default_factory=list)

    @property
    def cross_validated(self):
        return self.results is not None

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        missing = [col for col in self.feature_columns if col not in X.columns]
        if missing:
            raise SchemaError(f"Design matrix is missing columns: {missing}")
        return self.model.predict(X[self.feature_columns])

    def summary(self) -> str:
        lines = [f"{self.method} model ({len(self.feature_columns)} predictors, classes: {', '.join(self.classes)})"]
        if self.results is None:
            lines.append("No resampling; fit once on all rows.")
            lines.append(f"Parameters: {self.best_params}")
        else:
            lines.append(f"Resampling: cross-validated ({len(self.folds)} fold)")
            lines.append(self.results.to_string(index=False))
            lines.append(f"Selected: {self.best_params}  Accuracy={self.accuracy:.4f}  Kappa={self.kappa:.4f}")
        return "\n".join(lines)


def build_estimator(method: VALID_METHOD_TYPE, random_state=None,
                    tree_params: Optional[dict] = None, bagging_params: Optional[dict] = None):
    """Create an unfitted estimator for `method`."""
    if method == 'rpart':
        return DecisionTreeClassifier(random_state=random_state, **(tree_params or {}))
    if method == 'treebag':
        # bagged trees are grown without pruning
        return BaggingClassifier(
            estimator=DecisionTreeClassifier(),
            bootstrap=True,
            random_state=random_state,
            **(bagging_params or {})
        )
    raise ValueError(f"method must be one of {VALID_METHODS}, got '{method}'")


def rpart_grid(X, y, tune_length: int = TUNE_LENGTH, tree_params: Optional[dict] = None, random_state=None) -> Dict[str, list]:
    """
    Candidate complexity parameters for a single tree: the `tune_length`
    largest cost-complexity pruning thresholds below the one that prunes
    the tree back to its root.
    """
    tree = DecisionTreeClassifier(random_state=random_state, **(tree_params or {}))
    path = tree.cost_complexity_pruning_path(X, y)
    alphas = np.unique(np.clip(path.ccp_alphas, 0.0, None))[::-1]

    candidates = alphas[1:tune_length + 1]
    if len(candidates) < tune_length:
        candidates = np.unique(np.linspace(alphas.min(), alphas.max(), tune_length))

    return {'ccp_alpha': sorted(float(a) for a in candidates)}


def _resample_table(cv_results: dict) -> pd.DataFrame:
    table = pd.DataFrame(list(cv_results['params']))
    table['Accuracy'] = cv_results['mean_test_accuracy']
    table['Kappa'] = cv_results['mean_test_kappa']
    table['AccuracySD'] = cv_results['std_test_accuracy']
    table['KappaSD'] = cv_results['std_test_kappa']
    return table


def train_model(method: VALID_METHOD_TYPE, X: pd.DataFrame, y, control: TrainControl,
                random_state=None, tune_grid: Optional[Dict[str, list]] = None,
                tree_params: Optional[dict] = None, bagging_params: Optional[dict] = None,
                tune_length: int = TUNE_LENGTH) -> TrainResult:
    """
    Fit a classifier for `method`, scoring each candidate in `tune_grid` by
    k-fold cross-validation when `control.method == 'cv'` and refitting the
    most accurate candidate on every row.

    With `control.method == 'none'` the grid must hold a single candidate,
    which is fit once on all rows.
    """
    if method not in VALID_METHODS:
        raise ValueError(f"method must be one of {VALID_METHODS}, got '{method}'")

    y = np.asarray(y).astype(str)
    classes = sorted(np.unique(y).tolist())
    feature_columns = list(X.columns)

    if tune_grid is None:
        if method == 'rpart':
            tune_grid = rpart_grid(X, y, tune_length, tree_params, random_state)
        else:
            tune_grid = {'n_estimators': [(bagging_params or {}).get('n_estimators', N_BAGS)]}

    estimator = build_estimator(method, random_state, tree_params, bagging_params)

    if control.method == 'none':
        n_candidates = int(np.prod([len(values) for values in tune_grid.values()]))
        if n_candidates != 1:
            raise ValueError(f"Only one model can be specified in tune_grid without resampling, got {n_candidates}")
        params = {key: values[0] for key, values in tune_grid.items()}
        estimator.set_params(**params)
        if control.verbose_iter:
            print(f"{ANSI_BLUE}Fitting {method} {params} on full training set{ANSI_RESET}")
        estimator.fit(X, y)
        return TrainResult(
            model=estimator, method=method, best_params=params,
            classes=classes, feature_columns=feature_columns
        )

    folds = make_folds(y, control.number, random_state)
    grid_search = GridSearchCV(
        estimator=estimator,
        param_grid=tune_grid,
        scoring={'accuracy': 'accuracy', 'kappa': make_scorer(cohen_kappa_score)},
        refit='accuracy',
        cv=folds,
        verbose=2 if control.verbose_iter else 0,
        n_jobs=1,
        error_score='raise'
    )
    grid_search.fit(X, y)

    results = _resample_table(grid_search.cv_results_)
    best = grid_search.best_index_
    if control.verbose_iter:
        print(f"{ANSI_BLUE}Aggregating results{ANSI_RESET}")
        print(f"{ANSI_BLUE}Selecting tuning parameters: {grid_search.best_params_}{ANSI_RESET}")

    return TrainResult(
        model=grid_search.best_estimator_,
        method=method,
        best_params=grid_search.best_params_,
        classes=classes,
        feature_columns=feature_columns,
        results=results,
        accuracy=float(results['Accuracy'].iloc[best]),
        kappa=float(results['Kappa'].iloc[best]),
        folds=folds,
    )
