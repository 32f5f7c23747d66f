from dataclasses import asdict
from typing import Dict, Any, Optional
import wandb

from wle_har.config import Config


class WandBLogger:
    def __init__(self, config: Config, run_name: Optional[str] = None):
        self.config = config
        self.wandb_config = {
            'data': asdict(config.data),
            'train': asdict(config.train),
            'tree': asdict(config.tree),
            'bagging': asdict(config.bagging),
        }

        self.run = wandb.init(
            mode=config.wandb.mode,
            entity=config.wandb.entity,
            project=config.wandb.project,
            dir=config.output_paths.run_dir,
            config=self.wandb_config,
            job_type='train',
            name=run_name
        )
        self.cm_save_dir = 'confusion_matrix'

    def log_metrics(self, metrics: Dict[str, Any], step: int = None, commit: bool = True):
        """Log metrics to wandb"""
        wandb.log(metrics, step=step, commit=commit)

    def log_model_metrics(self, model_name: str, metrics: Dict[str, Any]):
        """Log model-specific metrics with proper naming"""
        prefixed_metrics = {f"{model_name}/{k}": v for k, v in metrics.items()}
        self.log_metrics(prefixed_metrics)

    def log_image(self, model_name: str, image_path: str):
        """Log a saved plot under the model's confusion matrix key"""
        self.log_metrics({f"{model_name}/{self.cm_save_dir}": wandb.Image(image_path)})

    def finish(self):
        """Finish the wandb run"""
        wandb.finish()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.finish()
