from __future__ import annotations

import numpy as np
import pytest

from vectorclf.classifiers import Classifier, LinearClassifier
from vectorclf.errors import DimensionMismatchError, EmptyInputError
from vectorclf.types import CategoricalDomain, FeatureVector, LabeledVariable, LabelVariable


def _dataset() -> tuple[list[LabeledVariable], dict[LabelVariable, FeatureVector]]:
    domain = CategoricalDomain(["red", "green", "blue"])
    rows = [
        ("red", {0: 1.0}),
        ("green", {1: 1.0}),
        ("blue", {2: 1.0}),
        ("red", {0: 2.0, 3: 1.0}),
        ("blue", {2: 0.5, 3: 1.0}),
    ]
    labels: list[LabeledVariable] = []
    features: dict[LabelVariable, FeatureVector] = {}
    for category, values in rows:
        label = LabeledVariable.from_category(domain, category)
        labels.append(label)
        features[label] = FeatureVector(4, values)
    return labels, features


def _trained_classifier(features: dict[LabelVariable, FeatureVector]) -> LinearClassifier:
    classifier = LinearClassifier(3, 4, features.__getitem__)
    classifier.weights[0, 0] = 1.0
    classifier.weights[1, 1] = 1.0
    classifier.weights[2, 2] = 1.0
    classifier.weights[:, 3] = [0.1, 0.2, 0.3]
    return classifier


def test_new_classifier_has_zero_weights() -> None:
    labels, features = _dataset()
    classifier = LinearClassifier.for_labels(labels, features.__getitem__)

    assert classifier.weights.shape == (3, 4)
    assert not classifier.weights.any()
    assert labels[0].domain.frozen is True
    assert isinstance(classifier, Classifier)


def test_score_vector_matches_domain_size() -> None:
    labels, features = _dataset()
    classifier = _trained_classifier(features)

    for label in labels:
        result = classifier.classification(label)
        assert result.scores.shape == (len(label.domain),)
        assert result.variable is label


def test_classification_is_a_dot_product() -> None:
    labels, features = _dataset()
    classifier = _trained_classifier(features)

    result = classifier.classification(labels[3])

    np.testing.assert_allclose(result.scores, [2.1, 0.2, 0.3])
    assert result.best_index == 0
    assert classifier.best_index(labels[3]) == 0


def test_wrong_feature_dimension_is_rejected() -> None:
    domain = CategoricalDomain(["a", "b"])
    label = LabeledVariable(domain, 0)
    classifier = LinearClassifier(2, 3, lambda _label: FeatureVector(5, {4: 1.0}))

    with pytest.raises(DimensionMismatchError):
        classifier.classification(label)
    with pytest.raises(DimensionMismatchError):
        classifier.best_index(label)


def test_wrong_label_domain_is_rejected() -> None:
    domain = CategoricalDomain(["a", "b", "c", "d"])
    label = LabeledVariable(domain, 0)
    classifier = LinearClassifier(2, 3, lambda _label: FeatureVector(3))

    with pytest.raises(DimensionMismatchError):
        classifier.classification(label)


def test_existing_weights_must_match_shape() -> None:
    with pytest.raises(DimensionMismatchError):
        LinearClassifier(2, 3, None, weights=np.zeros((3, 2)))
    with pytest.raises(TypeError):
        LinearClassifier(2, 3, None, weights=np.zeros((2, 3), dtype=np.int64))


def test_classifiers_sharing_weights_score_identically() -> None:
    labels, features = _dataset()
    first = LinearClassifier(3, 4, features.__getitem__)
    second = LinearClassifier(3, 4, features.__getitem__, weights=first.weights)

    first.weights[2, 0] = 5.0

    assert second.weights is first.weights
    np.testing.assert_array_equal(
        first.classification(labels[0]).scores,
        second.classification(labels[0]).scores,
    )
    assert second.best_index(labels[0]) == 2


def test_classify_sets_best_index_and_is_reproducible() -> None:
    labels, features = _dataset()
    classifier = _trained_classifier(features)
    label = labels[4]
    label.set_index(0)

    result = classifier.classify(label)

    assert label.index == result.best_index == 2
    again = classifier.classification(label)
    np.testing.assert_array_equal(again.scores, result.scores)


def test_classify_rejects_immutable_variables() -> None:
    labels, features = _dataset()
    frozen_label = LabelVariable(labels[0].domain, 0)
    features[frozen_label] = FeatureVector(4, {1: 1.0})
    classifier = _trained_classifier(features)

    with pytest.raises(TypeError):
        classifier.classify(frozen_label)  # type: ignore[arg-type]
    assert classifier.classification(frozen_label).best_index == 1


def test_parallel_and_sequential_classifications_match() -> None:
    labels, features = _dataset()
    classifier = _trained_classifier(features)

    sequential = classifier.classifications(labels, workers=1)
    parallel = classifier.classifications(labels, workers=4)

    assert [result.variable for result in parallel] == labels
    for left, right in zip(sequential, parallel):
        assert left.best_index == right.best_index
        np.testing.assert_array_equal(left.scores, right.scores)


def test_classify_all_updates_every_label_in_order() -> None:
    labels, features = _dataset()
    classifier = _trained_classifier(features)
    for label in labels:
        label.set_index(1)

    results = classifier.classify_all(labels, workers=3)

    assert [label.index for label in labels] == [0, 1, 2, 0, 2]
    assert [result.best_index for result in results] == [0, 1, 2, 0, 2]


def test_accuracy_counts_target_matches() -> None:
    labels, features = _dataset()
    classifier = _trained_classifier(features)
    assert classifier.accuracy(labels) == pytest.approx(1.0)

    classifier.weights[1, 3] = 10.0
    assert classifier.accuracy(labels) == pytest.approx(3 / 5)


def test_accuracy_of_no_labels_is_an_error() -> None:
    classifier = LinearClassifier(2, 2, lambda _label: FeatureVector(2))
    with pytest.raises(EmptyInputError):
        classifier.accuracy([])
