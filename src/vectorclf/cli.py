"""vectorclf command-line interface."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, NoReturn

import typer

from . import __version__
from .config import (
    DEFAULT_CONFIG_PATH,
    TRAINER_NAMES,
    Config,
    ConfigError,
    default_config,
    load_config,
)
from .errors import ClassifyError
from .loader import LabeledInstance, LoaderError, instances_to_labels, load_tsv
from .logging import configure_logging
from .store import ModelBundle, StoreError, load_model, save_model
from .trainers import AccuracyDiagnostic, build_trainer
from .types import CategoricalDomain, FeatureDomain

app = typer.Typer(help="Train and evaluate vector classifiers.")
LOGGER = logging.getLogger(__name__)


@dataclass
class CLIState:
    """Stores shared CLI options."""

    config_path: Path | None
    log_dir: Path | None = None


@app.callback()
def _vectorclf(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option(
            "-c",
            "--config",
            help="Path to config (env VECTORCLF_CONFIG or ~/.config/vectorclf/config.yaml).",
        ),
    ] = None,
    log_dir: Annotated[
        Path | None,
        typer.Option("--log-dir", help="Also write rotating log files into this directory."),
    ] = None,
) -> None:
    """Capture global CLI options."""

    resolved = config.expanduser() if config else None
    ctx.obj = CLIState(config_path=resolved, log_dir=log_dir)


@app.command()
def version() -> None:
    """Print the installed version."""

    typer.echo(__version__)


@app.command()
def train(
    ctx: typer.Context,
    train_file: Annotated[Path, typer.Argument(..., help="Tab-separated training data.")],
    test: Annotated[
        Path | None,
        typer.Option("-t", "--test", help="Tab-separated test data to report accuracy on."),
    ] = None,
    trainer: Annotated[
        str | None,
        typer.Option("--trainer", help=f"One of: {', '.join(TRAINER_NAMES)}."),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("-o", "--output", help="Write the trained model to this file."),
    ] = None,
) -> None:
    """Train a classifier and report its accuracy."""

    config = _load_environment(_state(ctx))
    if trainer is not None and trainer.strip().lower() not in TRAINER_NAMES:
        _failure(f"Unknown trainer '{trainer}' (expected one of: {', '.join(TRAINER_NAMES)})")

    label_domain = CategoricalDomain()
    feature_domain = FeatureDomain()
    train_instances = _load_instances(train_file, label_domain, feature_domain)
    label_domain.freeze()
    test_instances = _load_instances(test, label_domain, feature_domain) if test else []

    train_labels, _ = instances_to_labels(train_instances)
    test_labels, _ = instances_to_labels(test_instances)
    _all_labels, label_to_features = instances_to_labels(train_instances + test_instances)

    try:
        selected = build_trainer(config, trainer)
        diagnostic = AccuracyDiagnostic(train_labels=train_labels, test_labels=test_labels)
        classifier = selected.fit(train_labels, label_to_features, diagnostic)
        typer.echo(f"Trainer: {type(selected).__name__}")
        typer.echo(f"Categories: {len(label_domain)}  Features: {feature_domain.dimension}")
        typer.echo(f"Train accuracy: {classifier.accuracy(train_labels):.4f}")
        if test_labels:
            typer.echo(f"Test accuracy: {classifier.accuracy(test_labels):.4f}")
    except (ClassifyError, ValueError) as exc:
        _failure(f"Training failed: {exc}", exc)

    if output is not None:
        path = save_model(output, ModelBundle(classifier, label_domain, feature_domain))
        typer.echo(f"Model written to {path}")


@app.command()
def evaluate(
    ctx: typer.Context,
    model: Annotated[Path, typer.Argument(..., help="Model written by 'train --output'.")],
    data: Annotated[Path, typer.Argument(..., help="Tab-separated labeled data.")],
) -> None:
    """Report the accuracy of a saved model on labeled data."""

    _load_environment(_state(ctx))
    bundle = _load_bundle(model)
    instances = _load_instances(data, bundle.label_domain, bundle.feature_domain)
    labels, label_to_features = instances_to_labels(instances)
    bundle.classifier.label_to_features = label_to_features
    try:
        accuracy = bundle.classifier.accuracy(labels)
    except ClassifyError as exc:
        _failure(f"Evaluation failed: {exc}", exc)
    typer.echo(f"Instances: {len(labels)}")
    typer.echo(f"Accuracy: {accuracy:.4f}")


@app.command()
def classify(
    ctx: typer.Context,
    model: Annotated[Path, typer.Argument(..., help="Model written by 'train --output'.")],
    data: Annotated[
        Path, typer.Argument(..., help="Tab-separated data; label columns must be known categories.")
    ],
) -> None:
    """Print the best category for every line of ``data``."""

    _load_environment(_state(ctx))
    bundle = _load_bundle(model)
    instances = _load_instances(data, bundle.label_domain, bundle.feature_domain)
    labels, label_to_features = instances_to_labels(instances)
    bundle.classifier.label_to_features = label_to_features
    try:
        results = bundle.classifier.classify_all(labels)
    except ClassifyError as exc:
        _failure(f"Classification failed: {exc}", exc)
    for result in results:
        typer.echo(f"{result.best_value_string}\t{result.best_score:.4f}")


def _state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise RuntimeError("CLI state missing from context.")
    return state


def _load_environment(state: CLIState) -> Config:
    config = _load_config(state.config_path)
    try:
        configure_logging(config.logging, state.log_dir)
    except ConfigError as exc:
        _config_failure(exc)
    return config


def _load_config(path: Path | None) -> Config:
    if path is None and not os.environ.get("VECTORCLF_CONFIG"):
        if not DEFAULT_CONFIG_PATH.expanduser().exists():
            return default_config()
    try:
        return load_config(path)
    except ConfigError as exc:
        _config_failure(exc)


def _load_instances(
    path: Path, label_domain: CategoricalDomain, feature_domain: FeatureDomain
) -> list[LabeledInstance]:
    data_path = path.expanduser()
    if not data_path.is_file():
        _failure(f"Data file not found: {data_path}")
    try:
        return load_tsv(data_path, label_domain, feature_domain)
    except LoaderError as exc:
        _failure(f"Failed to read {data_path}: {exc}", exc)


def _load_bundle(path: Path) -> ModelBundle:
    try:
        return load_model(path)
    except StoreError as exc:
        _failure(str(exc), exc)


def _failure(message: str, exc: Exception | None = None) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(1) from exc


def _config_failure(exc: ConfigError) -> NoReturn:
    typer.secho(f"Configuration error: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(2) from exc


__all__ = ["app"]
