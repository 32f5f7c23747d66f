import json
import os

import numpy as np
import pytest

from wle_har.evaluation import confusion_matrix_report, plot_confusion_matrix, predictions_agree

CLASSES = ['A', 'B', 'C', 'D', 'E']


def test_accuracy_is_trace_over_total():
    reference = ['A', 'A', 'B', 'C', 'D', 'E']
    predicted = ['A', 'B', 'B', 'C', 'A', 'E']

    report = confusion_matrix_report(predicted, reference, CLASSES)

    assert report.table.loc['A', 'A'] == 1
    assert report.table.loc['B', 'A'] == 1  # predicted B, reference A
    assert report.table.loc['A', 'D'] == 1
    assert report.table.to_numpy().sum() == 6
    assert report.accuracy == pytest.approx(4 / 6)


def test_majority_class_predictor_accuracy_equals_frequency():
    reference = np.array(['A'] * 30 + ['B'] * 20 + ['C'] * 20 + ['D'] * 15 + ['E'] * 15)
    predicted = np.array(['A'] * len(reference))

    report = confusion_matrix_report(predicted, reference, CLASSES)

    assert report.accuracy == pytest.approx(0.3)
    assert report.overall['AccuracyNull'] == pytest.approx(0.3)
    assert report.kappa == pytest.approx(0.0)
    assert report.by_class.loc['Class: A', 'Sensitivity'] == pytest.approx(1.0)
    assert report.by_class.loc['Class: A', 'Specificity'] == pytest.approx(0.0)
    assert report.by_class.loc['Class: B', 'Detection Rate'] == pytest.approx(0.0)
    assert np.isnan(report.by_class.loc['Class: B', 'Pos Pred Value'])


def test_report_dict_is_strict_json():
    reference = np.array(['A'] * 30 + ['B'] * 20 + ['C'] * 20 + ['D'] * 15 + ['E'] * 15)
    predicted = np.array(['A'] * len(reference))

    as_dict = confusion_matrix_report(predicted, reference, CLASSES).to_dict()

    assert as_dict['by_class']['Class: B']['Pos Pred Value'] is None
    assert as_dict['by_class']['Class: A']['Sensitivity'] == pytest.approx(1.0)
    assert json.loads(json.dumps(as_dict, allow_nan=False)) == as_dict


def test_balanced_majority_predictor():
    reference = np.repeat(CLASSES, 10)
    predicted = np.array(['C'] * len(reference))

    report = confusion_matrix_report(predicted, reference, CLASSES)

    assert report.accuracy == pytest.approx(0.2)


def test_perfect_predictions_statistics():
    reference = np.repeat(CLASSES, 40)

    report = confusion_matrix_report(reference, reference, CLASSES)

    assert report.accuracy == 1.0
    assert report.kappa == pytest.approx(1.0)
    assert report.overall['AccuracyUpper'] == pytest.approx(1.0)
    assert report.overall['AccuracyLower'] < 1.0
    assert report.overall['AccuracyPValue'] < 1e-10
    assert (report.by_class['Balanced Accuracy'] == 1.0).all()


def test_report_text_and_dict():
    reference = ['A', 'B', 'C', 'D', 'E'] * 4
    predicted = ['A', 'B', 'C', 'D', 'A'] * 4

    report = confusion_matrix_report(predicted, reference, CLASSES)
    text = str(report)
    as_dict = report.to_dict()

    assert "Confusion Matrix and Statistics" in text
    assert "Kappa" in text
    assert "Class: E" in text
    assert as_dict['table']['A']['E'] == 4
    assert as_dict['overall']['Accuracy'] == pytest.approx(0.8)


def test_report_rejects_mismatched_lengths():
    with pytest.raises(ValueError):
        confusion_matrix_report(['A'], ['A', 'B'], CLASSES)
    with pytest.raises(ValueError):
        confusion_matrix_report([], [], CLASSES)


def test_report_rejects_labels_outside_classes():
    with pytest.raises(ValueError, match="'E'"):
        confusion_matrix_report(['A', 'B', 'A', 'B'], ['A', 'B', 'E', 'E'], ['A', 'B', 'C', 'D'])
    with pytest.raises(ValueError, match="'F'"):
        confusion_matrix_report(['A', 'F'], ['A', 'B'], CLASSES)


def test_predictions_agree():
    assert predictions_agree(['A', 'B'], np.array(['A', 'B']))
    assert not predictions_agree(['A', 'B'], ['A', 'C'])
    assert not predictions_agree(['A'], ['A', 'A'])


def test_plot_confusion_matrix(tmp_path):
    reference = ['A', 'B', 'C', 'D', 'E'] * 2
    report = confusion_matrix_report(reference, reference, CLASSES)

    path = plot_confusion_matrix(report, 'treebag', str(tmp_path / 'treebag_confusion_matrix.png'))

    assert os.path.exists(path)


def test_plot_confusion_matrix_requires_path():
    reference = ['A', 'B', 'C', 'D', 'E']
    report = confusion_matrix_report(reference, reference, CLASSES)

    with pytest.raises(TypeError):
        plot_confusion_matrix(report, 'treebag')
