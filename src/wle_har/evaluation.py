from dataclasses import dataclass
from typing import Dict, List, Sequence
import math

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from scipy import stats
from sklearn.metrics import confusion_matrix, cohen_kappa_score


def _safe_div(num, den) -> float:
    return float(num) / float(den) if den else float('nan')


@dataclass
class ConfusionMatrixReport:
    # rows are predictions, columns are reference labels
    table: pd.DataFrame
    overall: Dict[str, float]
    by_class: pd.DataFrame

    @property
    def accuracy(self) -> float:
        return self.overall['Accuracy']

    @property
    def kappa(self) -> float:
        return self.overall['Kappa']

    def to_dict(self) -> dict:
        return {
            'table': {pred: {ref: int(n) for ref, n in row.items()} for pred, row in self.table.iterrows()},
            'overall': {k: (None if math.isnan(v) else float(v)) for k, v in self.overall.items()},
            'by_class': {
                label: {k: (None if math.isnan(v) else round(float(v), 6)) for k, v in stats_row.items()}
                for label, stats_row in self.by_class.astype(float).iterrows()
            },
        }

    def __str__(self):
        table = self.table.copy()
        table.index.name = 'Prediction'
        table.columns.name = 'Reference'
        p_value = self.overall['AccuracyPValue']
        p_text = "< 2.2e-16" if p_value < 2.2e-16 else f"{p_value:.4g}"
        lines = [
            "Confusion Matrix and Statistics",
            "",
            table.to_string(),
            "",
            "Overall Statistics",
            "",
            f"{'Accuracy':>23} : {self.overall['Accuracy']:.4f}",
            f"{'95% CI':>23} : ({self.overall['AccuracyLower']:.4f}, {self.overall['AccuracyUpper']:.4f})",
            f"{'No Information Rate':>23} : {self.overall['AccuracyNull']:.4f}",
            f"{'P-Value [Acc > NIR]':>23} : {p_text}",
            "",
            f"{'Kappa':>23} : {self.overall['Kappa']:.4f}",
            "",
            "Statistics by Class:",
            "",
            self.by_class.T.to_string(float_format=lambda v: f"{v:.4f}"),
        ]
        return "\n".join(lines)


def confusion_matrix_report(predicted, reference, classes: Sequence[str]) -> ConfusionMatrixReport:
    """
    Cross-tabulate predicted against reference labels and derive accuracy
    statistics.

    Args:
        predicted: predicted labels
        reference: true labels
        classes: label order for the table
    Returns:
        ConfusionMatrixReport
    """
    predicted = np.asarray(predicted).astype(str)
    reference = np.asarray(reference).astype(str)
    classes = [str(c) for c in classes]
    if len(predicted) != len(reference):
        raise ValueError(f"predicted and reference lengths differ: {len(predicted)} != {len(reference)}")
    if len(reference) == 0:
        raise ValueError("Cannot build a confusion matrix from zero rows")
    unknown = sorted((set(predicted) | set(reference)) - set(classes))
    if unknown:
        raise ValueError(f"Labels not in classes {classes}: {unknown}")

    # sklearn puts true labels on rows; transpose to predictions on rows
    cm = confusion_matrix(reference, predicted, labels=classes).T
    table = pd.DataFrame(cm, index=classes, columns=classes)

    n = int(cm.sum())
    correct = int(np.trace(cm))
    accuracy = _safe_div(correct, n)

    binom = stats.binomtest(correct, n)
    ci = binom.proportion_ci(confidence_level=0.95, method='exact')
    nir = float(cm.sum(axis=0).max()) / n
    p_value = stats.binomtest(correct, n, p=nir, alternative='greater').pvalue

    overall = {
        'Accuracy': accuracy,
        'Kappa': float(cohen_kappa_score(reference, predicted, labels=classes)),
        'AccuracyLower': float(ci.low),
        'AccuracyUpper': float(ci.high),
        'AccuracyNull': nir,
        'AccuracyPValue': float(p_value),
    }

    by_class = {}
    for i, label in enumerate(classes):
        tp = cm[i, i]
        ref_pos = cm[:, i].sum()
        pred_pos = cm[i, :].sum()
        tn = n - ref_pos - pred_pos + tp
        sensitivity = _safe_div(tp, ref_pos)
        specificity = _safe_div(tn, n - ref_pos)
        by_class[f"Class: {label}"] = {
            'Sensitivity': sensitivity,
            'Specificity': specificity,
            'Pos Pred Value': _safe_div(tp, pred_pos),
            'Neg Pred Value': _safe_div(tn, n - pred_pos),
            'Prevalence': _safe_div(ref_pos, n),
            'Detection Rate': _safe_div(tp, n),
            'Detection Prevalence': _safe_div(pred_pos, n),
            'Balanced Accuracy': (sensitivity + specificity) / 2,
        }

    return ConfusionMatrixReport(
        table=table,
        overall=overall,
        by_class=pd.DataFrame.from_dict(by_class, orient='index'),
    )


def predictions_agree(first, second) -> bool:
    """True when two prediction sequences have the same length and match element-wise."""
    first = np.asarray(first).astype(str)
    second = np.asarray(second).astype(str)
    return first.shape == second.shape and bool(np.all(first == second))


def plot_confusion_matrix(report: ConfusionMatrixReport, name: str, plot_path: str) -> str:
    """Save raw and reference-normalized confusion matrix heatmaps to `plot_path`."""
    class_names: List[str] = list(report.table.columns)
    # heatmaps read true labels on rows
    cm = report.table.to_numpy().T
    with np.errstate(divide='ignore', invalid='ignore'):
        cm_norm = np.nan_to_num(cm / cm.sum(axis=1, keepdims=True))

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(12, 5))

    plt.rcParams.update({
        'font.size': 8,
        'axes.titlesize': 10,
        'axes.labelsize': 9,
    })

    sns.heatmap(cm, annot=True, fmt='d', cmap='Blues',
                xticklabels=class_names,
                yticklabels=class_names, ax=ax1,
                annot_kws={'size': 8})
    ax1.set_xlabel('Predicted')
    ax1.set_ylabel('True')
    ax1.set_title(f'{name}: Confusion Matrix (Raw Counts)')

    sns.heatmap(cm_norm, annot=True, fmt='.1%', cmap='Blues',
                xticklabels=class_names,
                yticklabels=class_names, ax=ax2,
                annot_kws={'size': 8})
    ax2.set_xlabel('Predicted')
    ax2.set_ylabel('True')
    ax2.set_title(f'{name}: Confusion Matrix (Normalized by True Label)')

    plt.tight_layout()
    plt.savefig(plot_path, bbox_inches='tight', dpi=150)
    plt.close(fig)
    return plot_path
