"""
End-to-end run over the Weight Lifting Exercise dataset (Velloso et al.,
Augmented Human 2013): prepare both tables, fit a decision tree and bagged
trees with k-fold cross-validation, report confusion matrices and predict
the `classe` of each query row.
"""
import argparse
import json
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from wle_har.config import Config
from wle_har.constants import REFERENCE, QUERY, ANSI_BLUE, ANSI_GREEN, ANSI_RED, ANSI_YELLOW, ANSI_RESET
from wle_har.data import FeatureSchema, SchemaError, load_table
from wle_har.evaluation import ConfusionMatrixReport, confusion_matrix_report, plot_confusion_matrix, predictions_agree
from wle_har.models import TrainControl, TrainResult, build_design_matrix, train_model
from wle_har.preprocessing import preprocess_data
from wle_har.util import WandBLogger


@dataclass
class RunContext:
    """Configuration plus the single random source every stochastic step draws from."""
    config: Config
    random_state: np.random.RandomState

    @classmethod
    def from_config(cls, config: Config) -> 'RunContext':
        return cls(config=config, random_state=np.random.RandomState(config.train.random_seed))


@dataclass
class PreparedData:
    schema: FeatureSchema
    reference: pd.DataFrame
    query: pd.DataFrame
    X_reference: pd.DataFrame
    y_reference: np.ndarray
    X_query: pd.DataFrame


@dataclass
class PipelineResult:
    models: Dict[str, TrainResult] = field(default_factory=dict)
    reports: Dict[str, ConfusionMatrixReport] = field(default_factory=dict)
    predictions: Dict[str, List[str]] = field(default_factory=dict)
    agree: Optional[bool] = None


def prepare_tables(config: Config) -> PreparedData:
    """Load both tables, derive the feature schema from the query table and clean both."""
    data_cfg = config.data
    training_data = load_table(data_cfg.training_csv, data_cfg.na_values)
    testing_data = load_table(data_cfg.testing_csv, data_cfg.na_values)
    print(f"Reference table: {training_data.shape}, query table: {testing_data.shape}")

    schema = FeatureSchema.from_query(
        testing_data,
        drop_columns=data_cfg.drop_columns,
        subject_col=data_cfg.subject_col,
        outcome_col=data_cfg.outcome_col,
    )
    print(f"Feature schema: {len(schema.feature_columns)} numeric columns + '{schema.subject_col}'")

    reference = preprocess_data(training_data, dtype=REFERENCE, schema=schema)
    query = preprocess_data(testing_data, dtype=QUERY, schema=schema)

    y_reference = reference[schema.outcome_col].astype(str).to_numpy()
    unknown = sorted(set(y_reference) - set(data_cfg.classes))
    if unknown:
        raise SchemaError(f"{schema.outcome_col} values not in classes {data_cfg.classes}: {unknown}")

    subject_levels = list(reference[schema.subject_col].cat.categories)
    return PreparedData(
        schema=schema,
        reference=reference,
        query=query,
        X_reference=build_design_matrix(reference, schema, subject_levels),
        y_reference=y_reference,
        X_query=build_design_matrix(query, schema, subject_levels),
    )


def evaluate(name: str, result: TrainResult, prepared: PreparedData, config: Config,
             logger: Optional[WandBLogger] = None) -> ConfusionMatrixReport:
    """Confusion matrix of a fitted model's predictions on the reference rows."""
    predictions = result.predict(prepared.X_reference)
    report = confusion_matrix_report(predictions, prepared.y_reference, config.data.classes)
    print(report)

    plot_path = plot_confusion_matrix(report, name, config.output_paths.get_plot_path(name, 'confusion_matrix'))

    metrics = {
        'method': result.method,
        'best_params': result.best_params,
        'cv_accuracy': result.accuracy,
        'cv_kappa': result.kappa,
        'confusion': report.to_dict(),
    }
    if result.cross_validated:
        metrics['resampling'] = result.results.to_dict(orient='records')
    with open(config.output_paths.get_metrics_path(name), 'w') as f:
        json.dump(metrics, f, indent=2, default=float)

    if logger:
        logger.log_model_metrics(name, {
            'accuracy': report.accuracy,
            'kappa': report.kappa,
            'cv_accuracy': result.accuracy,
        })
        logger.log_image(name, plot_path)

    return report


def fit(method: str, prepared: PreparedData, ctx: RunContext, control: TrainControl) -> TrainResult:
    config = ctx.config
    result = train_model(
        method,
        prepared.X_reference,
        prepared.y_reference,
        control,
        random_state=ctx.random_state,
        tree_params=config.get_tree_params(),
        bagging_params=config.get_bagging_params(),
        tune_length=config.train.tune_length,
    )
    print(result.summary())
    return result


def run(config: Config, logger: Optional[WandBLogger] = None) -> PipelineResult:
    ctx = RunContext.from_config(config)
    prepared = prepare_tables(config)
    output = PipelineResult()

    cv_control = TrainControl(method='cv', number=config.train.folds, verbose_iter=config.train.verbose_iter)

    print(f"{ANSI_BLUE}===(Decision tree, {config.train.folds}-fold CV)==={ANSI_RESET}")
    output.models['rpart'] = fit('rpart', prepared, ctx, cv_control)
    output.reports['rpart'] = evaluate('rpart', output.models['rpart'], prepared, config, logger)

    print(f"{ANSI_BLUE}===(Bagged trees, {config.train.folds}-fold CV)==={ANSI_RESET}")
    output.models['treebag'] = fit('treebag', prepared, ctx, cv_control)
    output.reports['treebag'] = evaluate('treebag', output.models['treebag'], prepared, config, logger)

    output.predictions['treebag'] = output.models['treebag'].predict(prepared.X_query).tolist()
    print(f"{ANSI_YELLOW}Predictions (cross-validated bagged trees):{ANSI_RESET}")
    print(output.predictions['treebag'])

    print(f"{ANSI_BLUE}===(Bagged trees, no resampling)==={ANSI_RESET}")
    none_control = TrainControl(method='none', verbose_iter=config.train.verbose_iter)
    output.models['treebag_full'] = fit('treebag', prepared, ctx, none_control)
    output.predictions['treebag_full'] = output.models['treebag_full'].predict(prepared.X_query).tolist()
    print(f"{ANSI_YELLOW}Predictions (bagged trees, no resampling):{ANSI_RESET}")
    print(output.predictions['treebag_full'])

    output.agree = predictions_agree(output.predictions['treebag'], output.predictions['treebag_full'])
    if output.agree:
        print(f"{ANSI_GREEN}Both bagged-tree models agree on all {len(prepared.X_query)} query rows{ANSI_RESET}")
    else:
        n_diff = sum(a != b for a, b in zip(output.predictions['treebag'], output.predictions['treebag_full']))
        print(f"{ANSI_RED}Bagged-tree models disagree on {n_diff} query rows{ANSI_RESET}")

    if logger:
        logger.log_metrics({'predictions_agree': int(output.agree)})

    return output


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Classify Weight Lifting Exercise quality from sensor data')
    parser.add_argument('--config', default='config.yml', help='Path to the YAML configuration')
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> PipelineResult:
    args = parse_args(argv)
    config = Config.from_yaml(args.config)

    logger = None
    if config.wandb.mode != 'disabled':
        logger = WandBLogger(config)

    try:
        result = run(config, logger)
    finally:
        if logger is not None:
            logger.finish()
        config.output_paths.clean()

    return result


if __name__ == "__main__":
    main()
