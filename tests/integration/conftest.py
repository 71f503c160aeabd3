from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

CATEGORIES = ("sports", "politics", "science")
SIGNATURE_WORDS = 5
NOISE_WORDS = 12


def write_corpus(path: Path, per_category: int, seed: int) -> Path:
    """Write a synthetic tab-separated corpus with one word cluster per category."""

    rng = np.random.default_rng(seed)
    lines = []
    for _round in range(per_category):
        for category in CATEGORIES:
            signature = rng.choice(SIGNATURE_WORDS, size=4, replace=False)
            words = [f"{category}_{int(index)}" for index in signature]
            noise = rng.choice(NOISE_WORDS, size=2, replace=False)
            words.extend(f"noise_{int(index)}:{rng.integers(1, 3)}" for index in noise)
            lines.append(f"{category}\t{' '.join(words)}")
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def corpus(tmp_path: Path) -> tuple[Path, Path]:
    """Return ``(train, test)`` corpus files drawn from the same distribution."""

    train = write_corpus(tmp_path / "train.tsv", per_category=20, seed=7)
    test = write_corpus(tmp_path / "test.tsv", per_category=10, seed=11)
    return train, test


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Automatically mark tests in this package as integration."""

    package_root = Path(__file__).resolve().parent
    integration_mark = pytest.mark.integration
    for item in items:
        try:
            path = Path(item.fspath).resolve()
        except OSError:
            continue
        if package_root in path.parents:
            item.add_marker(integration_mark)
