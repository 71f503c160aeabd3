from __future__ import annotations

import logging
from pathlib import Path

import pytest
from typer.testing import CliRunner

from vectorclf import __version__
from vectorclf.cli import app

runner = CliRunner()

TRAIN_DATA = "\n".join(
    [
        "spam\tfree:2 money winner",
        "spam\tfree prize money",
        "spam\twinner prize",
        "ham\tmeeting agenda notes",
        "ham\tagenda lunch",
        "ham\tmeeting notes:2",
        "",
    ]
)
TEST_DATA = "spam\tfree winner\nham\tmeeting lunch\n"


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.delenv("VECTORCLF_CONFIG", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    yield
    logging.captureWarnings(False)
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


def _write_data(tmp_path: Path) -> tuple[Path, Path]:
    train = tmp_path / "train.tsv"
    test = tmp_path / "test.tsv"
    train.write_text(TRAIN_DATA, encoding="utf-8")
    test.write_text(TEST_DATA, encoding="utf-8")
    return train, test


def _write_config(tmp_path: Path, content: str) -> Path:
    config = tmp_path / "config.yaml"
    config.write_text(content, encoding="utf-8")
    return config


def test_version_prints_package_version() -> None:
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_train_reports_accuracy_with_defaults(tmp_path: Path) -> None:
    train, test = _write_data(tmp_path)

    result = runner.invoke(app, ["train", str(train), "--test", str(test)])

    assert result.exit_code == 0, result.output
    assert "Trainer: OnlineGradientTrainer" in result.stdout
    assert "Categories: 2" in result.stdout
    assert "Train accuracy:" in result.stdout
    assert "Test accuracy:" in result.stdout


def test_train_evaluate_and_classify_saved_model(tmp_path: Path) -> None:
    train, test = _write_data(tmp_path)
    config = _write_config(tmp_path, "trainer: naive_bayes\nnaive_bayes:\n  pseudo_count: 0.5\n")
    model = tmp_path / "model.pkl"

    trained = runner.invoke(app, ["-c", str(config), "train", str(train), "--output", str(model)])

    assert trained.exit_code == 0, trained.output
    assert "Trainer: NaiveBayesTrainer" in trained.stdout
    assert "Train accuracy: 1.0000" in trained.stdout
    assert model.exists()

    evaluated = runner.invoke(app, ["-c", str(config), "evaluate", str(model), str(test)])

    assert evaluated.exit_code == 0, evaluated.output
    assert "Instances: 2" in evaluated.stdout
    assert "Accuracy: 1.0000" in evaluated.stdout

    classified = runner.invoke(app, ["-c", str(config), "classify", str(model), str(test)])

    assert classified.exit_code == 0, classified.output
    lines = [line for line in classified.stdout.splitlines() if "\t" in line]
    assert [line.split("\t")[0] for line in lines] == ["spam", "ham"]


@pytest.mark.parametrize(
    ("trainer", "trainer_class"),
    [("batch", "BatchGradientTrainer"), ("svm", "SVMTrainer"), ("tree", "DecisionTreeTrainer")],
)
def test_train_with_each_trainer(tmp_path: Path, trainer: str, trainer_class: str) -> None:
    train, test = _write_data(tmp_path)

    result = runner.invoke(
        app, ["train", str(train), "--test", str(test), "--trainer", trainer]
    )

    assert result.exit_code == 0, result.output
    assert f"Trainer: {trainer_class}" in result.stdout
    assert "Train accuracy: 1.0000" in result.stdout


def test_unknown_trainer_exits_with_error(tmp_path: Path) -> None:
    train, _test = _write_data(tmp_path)

    result = runner.invoke(app, ["train", str(train), "--trainer", "perceptron"])

    assert result.exit_code == 1
    assert "Unknown trainer" in result.output


def test_missing_config_exits_with_config_error(tmp_path: Path) -> None:
    train, _test = _write_data(tmp_path)

    result = runner.invoke(app, ["-c", str(tmp_path / "missing.yaml"), "train", str(train)])

    assert result.exit_code == 2
    assert "Configuration error" in result.output


def test_missing_data_file_exits_with_error(tmp_path: Path) -> None:
    result = runner.invoke(app, ["train", str(tmp_path / "absent.tsv")])

    assert result.exit_code == 1
    assert "Data file not found" in result.output


def test_unknown_test_category_is_rejected(tmp_path: Path) -> None:
    train, test = _write_data(tmp_path)
    test.write_text("phishing\tfree\n", encoding="utf-8")

    result = runner.invoke(app, ["train", str(train), "--test", str(test)])

    assert result.exit_code == 1
    assert "phishing" in result.output


def test_corrupt_model_exits_with_error(tmp_path: Path) -> None:
    _train, test = _write_data(tmp_path)
    model = tmp_path / "model.pkl"
    model.write_bytes(b"garbage")

    result = runner.invoke(app, ["evaluate", str(model), str(test)])

    assert result.exit_code == 1
    assert "corrupt" in result.output


def test_log_dir_receives_log_file(tmp_path: Path) -> None:
    train, _test = _write_data(tmp_path)
    log_dir = tmp_path / "logs"

    result = runner.invoke(
        app, ["--log-dir", str(log_dir), "train", str(train), "--trainer", "naive_bayes"]
    )

    assert result.exit_code == 0, result.output
    assert (log_dir / "vectorclf.log").exists()
