"""Reading labeled instances from tab-separated text files.

Each non-blank line holds a category, a tab, then whitespace separated
features written as ``name`` (value 1.0) or ``name:value``. Lines starting
with ``#`` are comments.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from .types import CategoricalDomain, FeatureDomain, FeatureVector, LabeledVariable

LOGGER = logging.getLogger(__name__)


class LoaderError(ValueError):
    """Raised when an input file cannot be parsed."""


@dataclass(frozen=True)
class LabeledInstance:
    label: LabeledVariable
    features: FeatureVector


class InstanceFeatures:
    """Label-to-features mapping over loaded instances."""

    def __init__(self, instances: Iterable[LabeledInstance]) -> None:
        self._features = {id(instance.label): instance.features for instance in instances}

    def __call__(self, label: LabeledVariable) -> FeatureVector:
        try:
            return self._features[id(label)]
        except KeyError as exc:
            raise KeyError(f"No features recorded for {label!r}") from exc


def load_tsv(
    path: Path,
    label_domain: CategoricalDomain,
    feature_domain: FeatureDomain,
) -> list[LabeledInstance]:
    """Parse ``path`` into labeled instances.

    An open feature domain grows with every new feature name and is frozen
    once the file has been read, so all vectors share one dimension. With a
    frozen feature domain unknown feature names are skipped.
    """

    rows: list[tuple[int, str, list[tuple[str, float]]]] = []
    with Path(path).open("r", encoding="utf-8") as handle:
        for line_number, raw in enumerate(handle, start=1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            category, separator, rest = raw.rstrip("\n").partition("\t")
            category = category.strip()
            if not separator or not category:
                raise LoaderError(f"{path}:{line_number}: expected '<label>\\t<features>'")
            rows.append((line_number, category, _parse_features(path, line_number, rest)))

    for _line_number, _category, features in rows:
        for name, _value in features:
            if not feature_domain.frozen:
                feature_domain.index(name)
    feature_domain.freeze()

    instances: list[LabeledInstance] = []
    skipped = 0
    for line_number, category, features in rows:
        try:
            label = LabeledVariable.from_category(label_domain, category)
        except ValueError as exc:
            raise LoaderError(f"{path}:{line_number}: {exc}") from exc
        values: dict[int, float] = {}
        for name, value in features:
            if name not in feature_domain:
                skipped += 1
                continue
            index = feature_domain.index(name, add=False)
            values[index] = values.get(index, 0.0) + value
        instances.append(LabeledInstance(label, FeatureVector(feature_domain.dimension, values)))

    if skipped:
        LOGGER.debug("Skipped %d unknown feature occurrence(s) in %s", skipped, path)
    LOGGER.info("Loaded %d instance(s) from %s", len(instances), path)
    return instances


def _parse_features(path: Path, line_number: int, text: str) -> list[tuple[str, float]]:
    features: list[tuple[str, float]] = []
    for token in text.split():
        name, separator, raw_value = token.rpartition(":")
        if not separator:
            features.append((token, 1.0))
            continue
        if not name:
            raise LoaderError(f"{path}:{line_number}: feature '{token}' has no name")
        try:
            features.append((name, float(raw_value)))
        except ValueError as exc:
            raise LoaderError(f"{path}:{line_number}: invalid value in '{token}'") from exc
    return features


def instances_to_labels(
    instances: Iterable[LabeledInstance],
) -> tuple[list[LabeledVariable], InstanceFeatures]:
    instances = list(instances)
    return [instance.label for instance in instances], InstanceFeatures(instances)


__all__ = [
    "InstanceFeatures",
    "LabeledInstance",
    "LoaderError",
    "instances_to_labels",
    "load_tsv",
]
