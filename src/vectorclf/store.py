"""Persistence helpers for trained models."""

from __future__ import annotations

import logging
import pickle
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from .classifiers.base import BaseClassifier

if TYPE_CHECKING:
    from .types import CategoricalDomain, FeatureDomain

LOGGER = logging.getLogger(__name__)
BUNDLE_VERSION = 1


class StoreError(RuntimeError):
    """Raised when a persisted model cannot be read."""


@dataclass
class ModelBundle:
    """A trained classifier together with the domains it was trained over."""

    classifier: BaseClassifier
    label_domain: CategoricalDomain
    feature_domain: FeatureDomain


def atomic_write(target: Path, writer: Callable[[Path], None]) -> None:
    """Write through a temporary sibling file and rename it into place."""

    target.parent.mkdir(parents=True, exist_ok=True)
    tmp_name = f".{target.name}.{uuid.uuid4().hex}.tmp"
    tmp_path = target.with_name(tmp_name)
    try:
        writer(tmp_path)
        tmp_path.replace(target)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def save_model(path: Path, bundle: ModelBundle) -> Path:
    """Pickle ``bundle`` to ``path``; the label mapping is never stored."""

    path = Path(path).expanduser()
    mapping = bundle.classifier.label_to_features
    bundle.classifier.label_to_features = None
    payload = {
        "version": BUNDLE_VERSION,
        "classifier": bundle.classifier,
        "label_domain": bundle.label_domain,
        "feature_domain": bundle.feature_domain,
    }

    def _write(tmp_path: Path) -> None:
        with tmp_path.open("wb") as handle:
            pickle.dump(payload, handle)

    try:
        atomic_write(path, _write)
    finally:
        bundle.classifier.label_to_features = mapping
    LOGGER.info("Saved %s to %s", type(bundle.classifier).__name__, path)
    return path


def load_model(path: Path) -> ModelBundle:
    path = Path(path).expanduser()
    if not path.exists():
        raise StoreError(f"Model file not found: {path}")
    try:
        with path.open("rb") as handle:
            payload = pickle.load(handle)
    except (pickle.UnpicklingError, EOFError, AttributeError, ImportError) as exc:
        raise StoreError(f"Model file is corrupt: {path}") from exc
    if not isinstance(payload, dict) or payload.get("version") != BUNDLE_VERSION:
        raise StoreError(f"Unsupported model file format: {path}")
    if not isinstance(payload.get("classifier"), BaseClassifier):
        raise StoreError(f"Model file does not contain a classifier: {path}")
    return ModelBundle(
        classifier=payload["classifier"],
        label_domain=payload["label_domain"],
        feature_domain=payload["feature_domain"],
    )


__all__ = ["ModelBundle", "StoreError", "atomic_write", "load_model", "save_model"]
