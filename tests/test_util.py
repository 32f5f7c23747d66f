from wle_har.config import Config, OutputPathsConfig, WandBConfig
from wle_har.util import WandBLogger


def test_disabled_logger_accepts_metrics(tmp_path):
    config = Config(
        output_paths=OutputPathsConfig(base_path=str(tmp_path / "out"), run_id="wandb"),
        wandb=WandBConfig(mode='disabled'),
    )

    with WandBLogger(config, run_name='unit') as logger:
        assert logger.wandb_config['bagging']['n_estimators'] == 25
        logger.log_model_metrics('treebag', {'accuracy': 0.99, 'kappa': 0.98})
        logger.log_metrics({'predictions_agree': 1})
