from dataclasses import dataclass, field
from typing import List, Optional, Literal
import yaml
import os
from datetime import datetime

from wle_har.constants import (
    NA_VALUES, NON_FEATURE_COLS, OUTCOME_COL, SUBJECT_COL, CLASSES,
    RANDOM_SEED, N_FOLDS, TUNE_LENGTH, N_BAGS
)


def _section(config_dict: dict, section: str) -> dict:
    # a section key with nothing under it loads as None
    return config_dict.get(section) or {}


@dataclass
class DataConfig:
    training_csv: str = "data/pml-training.csv"
    testing_csv: str = "data/pml-testing.csv"
    na_values: List[str] = field(default_factory=lambda: list(NA_VALUES))
    drop_columns: List[str] = field(default_factory=lambda: list(NON_FEATURE_COLS))
    subject_col: str = SUBJECT_COL
    outcome_col: str = OUTCOME_COL
    classes: List[str] = field(default_factory=lambda: list(CLASSES))

    def __post_init__(self):
        """Validate configuration parameters"""
        if not self.classes:
            raise ValueError("classes must not be empty")
        if len(set(self.classes)) != len(self.classes):
            raise ValueError(f"classes contains duplicates: {self.classes}")
        if self.subject_col == self.outcome_col:
            raise ValueError("subject_col and outcome_col must name different columns")
        if self.outcome_col in self.drop_columns or self.subject_col in self.drop_columns:
            raise ValueError("drop_columns may not contain the subject or outcome column")

    @property
    def num_classes(self):
        return len(self.classes)


@dataclass
class TrainConfig:
    random_seed: int = RANDOM_SEED
    folds: int = N_FOLDS
    tune_length: int = TUNE_LENGTH
    verbose_iter: bool = True

    def __post_init__(self):
        if self.folds < 2:
            raise ValueError("folds must be at least 2")
        if self.tune_length < 1:
            raise ValueError("tune_length must be at least 1")


@dataclass
class TreeConfig:
    # rpart defaults: minsplit=20, minbucket=round(minsplit/3), maxdepth=30
    criterion: Literal["gini", "entropy"] = "gini"
    min_samples_split: int = 20
    min_samples_leaf: int = 7
    max_depth: int = 30

    def __post_init__(self):
        if self.criterion not in {"gini", "entropy"}:
            raise ValueError("criterion must be one of {'gini', 'entropy'}")
        if self.min_samples_split < 2:
            raise ValueError("min_samples_split must be at least 2")
        if self.min_samples_leaf < 1:
            raise ValueError("min_samples_leaf must be at least 1")
        if self.max_depth < 1:
            raise ValueError("max_depth must be at least 1")


@dataclass
class BaggingConfig:
    n_estimators: int = N_BAGS
    max_samples: float = 1.0
    n_jobs: Optional[int] = None

    def __post_init__(self):
        if self.n_estimators < 1:
            raise ValueError("n_estimators must be at least 1")
        if not 0 < self.max_samples <= 1:
            raise ValueError("max_samples must be in (0, 1]")


@dataclass
class WandBConfig:
    mode: Literal["online", "offline", "disabled"] = "disabled"
    entity: Optional[str] = None
    project: str = "wle-har"

    def __post_init__(self):
        valid_modes = {"online", "offline", "disabled"}
        if self.mode not in valid_modes:
            raise ValueError(f"wandb mode must be one of {valid_modes}")


@dataclass
class OutputPathsConfig:
    base_path: str
    run_id: str = None

    def __post_init__(self):
        if not os.path.exists(self.base_path):
            os.makedirs(self.base_path)

        if not self.run_id:
            self.run_id = datetime.now().strftime("%Y%m%d_%H%M%S")

        # Create run directory structure
        self.run_dir = os.path.join(self.base_path, f"run_{self.run_id}")
        self.plots_dir = os.path.join(self.run_dir, "plots")
        self.metrics_dir = os.path.join(self.run_dir, "metrics")

        for dir_path in [self.run_dir, self.plots_dir, self.metrics_dir]:
            os.makedirs(dir_path, exist_ok=True)

    def get_plot_path(self, model_name: str, plot_name: str) -> str:
        """Get path for a specific plot"""
        return os.path.join(self.plots_dir, f"{model_name}_{plot_name}.png")

    def get_metrics_path(self, model_name: str) -> str:
        """Get path for saving model metrics"""
        return os.path.join(self.metrics_dir, f"{model_name}_metrics.json")

    def clean(self):
        for root, dirs, files in os.walk(self.base_path, topdown=False):
            for dir_name in dirs:
                dir_path = os.path.join(root, dir_name)
                try:
                    # only empty directories are removed
                    if not os.listdir(dir_path):
                        os.rmdir(dir_path)
                except OSError:
                    continue


@dataclass
class Config:
    output_paths: OutputPathsConfig
    data: DataConfig = field(default_factory=DataConfig)
    train: TrainConfig = field(default_factory=TrainConfig)
    tree: TreeConfig = field(default_factory=TreeConfig)
    bagging: BaggingConfig = field(default_factory=BaggingConfig)
    wandb: WandBConfig = field(default_factory=WandBConfig)
    file_path: Optional[str] = None

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'Config':
        with open(yaml_path, 'r') as f:
            config_dict = yaml.safe_load(f) or {}

        output_paths = OutputPathsConfig(base_path=config_dict.get('base_output_dir') or 'output')

        return cls(
            output_paths=output_paths,
            data=DataConfig(**_section(config_dict, 'data')),
            train=TrainConfig(**_section(config_dict, 'train')),
            tree=TreeConfig(**_section(config_dict, 'tree')),
            bagging=BaggingConfig(**_section(config_dict, 'bagging')),
            wandb=WandBConfig(**_section(config_dict, 'wandb')),
            file_path=yaml_path,
        )

    def get_tree_params(self):
        return {
            'criterion': self.tree.criterion,
            'min_samples_split': self.tree.min_samples_split,
            'min_samples_leaf': self.tree.min_samples_leaf,
            'max_depth': self.tree.max_depth,
        }

    def get_bagging_params(self):
        return {
            'n_estimators': self.bagging.n_estimators,
            'max_samples': self.bagging.max_samples,
            'n_jobs': self.bagging.n_jobs,
        }
