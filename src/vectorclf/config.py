"""Configuration loading and validation."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .optimize.objectives import OBJECTIVES
from .optimize.optimizers import OPTIMIZERS, STEP_OPTIMIZERS

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.config/vectorclf/config.yaml")
DEFAULT_LOG_LEVEL = "info"
TRAINER_NAMES = ("online", "batch", "naive_bayes", "svm", "tree")


class ConfigError(ValueError):
    """Raised when configuration is invalid or missing."""


@dataclass(frozen=True)
class LoggingConfig:
    """Logging-related configuration."""

    level: str = DEFAULT_LOG_LEVEL
    debug_file: bool = False


@dataclass(frozen=True)
class GradientConfig:
    optimizer: str = "adagrad"
    learning_rate: float = 1.0
    l2: float = 0.0
    averaging: bool = True
    tolerance: float = 1e-6
    objective: str = "log"
    max_iterations: int = 3
    mini_batch: int = -1
    parallel: bool = False
    random_state: int | None = 0


@dataclass(frozen=True)
class BatchConfig:
    optimizer: str = "lbfgs"
    learning_rate: float = 0.1
    l2: float = 0.1
    tolerance: float = 1e-6
    objective: str = "log"
    max_iterations: int = 200
    parallel: bool = True


@dataclass(frozen=True)
class NaiveBayesConfig:
    pseudo_count: float = 0.1


@dataclass(frozen=True)
class SVMConfig:
    C: float = 1.0
    tolerance: float = 1e-4
    max_iterations: int = 1000
    parallel: bool = False


@dataclass(frozen=True)
class TreeConfig:
    max_depth: int | None = None
    min_samples_leaf: int = 1


@dataclass(frozen=True)
class Config:
    """Fully parsed configuration."""

    trainer: str = "online"
    workers: int | None = None
    gradient: GradientConfig = field(default_factory=GradientConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    naive_bayes: NaiveBayesConfig = field(default_factory=NaiveBayesConfig)
    svm: SVMConfig = field(default_factory=SVMConfig)
    tree: TreeConfig = field(default_factory=TreeConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def default_config() -> Config:
    return Config()


def load_config(path: Path | str | None = None) -> Config:
    """Load and validate configuration from YAML."""

    config_path = _resolve_config_path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    if not isinstance(raw, dict):
        raise ConfigError("Configuration root must be a mapping.")

    return parse_config(raw)


def _resolve_config_path(explicit: Path | str | None) -> Path:
    if explicit:
        return Path(explicit).expanduser()
    env_path = os.environ.get("VECTORCLF_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH.expanduser()


def parse_config(raw: dict[str, Any]) -> Config:
    unknown = set(raw) - {
        "trainer",
        "workers",
        "gradient",
        "batch",
        "naive_bayes",
        "svm",
        "tree",
        "logging",
    }
    if unknown:
        LOGGER.warning("Ignoring unknown configuration keys: %s", ", ".join(sorted(unknown)))
    return Config(
        trainer=_parse_trainer(raw.get("trainer", "online")),
        workers=_parse_workers(raw.get("workers")),
        gradient=_parse_gradient(_section(raw, "gradient")),
        batch=_parse_batch(_section(raw, "batch")),
        naive_bayes=_parse_naive_bayes(_section(raw, "naive_bayes")),
        svm=_parse_svm(_section(raw, "svm")),
        tree=_parse_tree(_section(raw, "tree")),
        logging=_parse_logging(raw.get("logging")),
    )


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{name} must be a mapping.")
    return value


def _parse_trainer(value: Any) -> str:
    name = str(value).strip().lower()
    if name not in TRAINER_NAMES:
        raise ConfigError(f"trainer must be one of: {', '.join(TRAINER_NAMES)}")
    return name


def _parse_workers(value: Any) -> int | None:
    if value is None:
        return None
    workers = _number(value, "workers", int)
    if workers < 1:
        raise ConfigError("workers must be at least 1.")
    return workers


def _parse_gradient(value: dict[str, Any]) -> GradientConfig:
    defaults = GradientConfig()
    common = _parse_optimization(value, "gradient", defaults, STEP_OPTIMIZERS)
    random_state = value.get("random_state", defaults.random_state)
    return GradientConfig(
        **common,
        averaging=bool(value.get("averaging", defaults.averaging)),
        mini_batch=_number(value.get("mini_batch", defaults.mini_batch), "gradient.mini_batch", int),
        random_state=None if random_state is None else _number(random_state, "gradient.random_state", int),
    )


def _parse_batch(value: dict[str, Any]) -> BatchConfig:
    return BatchConfig(**_parse_optimization(value, "batch", BatchConfig(), OPTIMIZERS))


def _parse_optimization(
    value: dict[str, Any],
    section: str,
    defaults: GradientConfig | BatchConfig,
    optimizers: tuple[str, ...],
) -> dict[str, Any]:
    optimizer = str(value.get("optimizer", defaults.optimizer)).strip().lower()
    if optimizer not in optimizers:
        raise ConfigError(f"{section}.optimizer must be one of: {', '.join(optimizers)}")
    objective = str(value.get("objective", defaults.objective)).strip().lower()
    if objective not in OBJECTIVES:
        raise ConfigError(f"{section}.objective must be one of: {', '.join(sorted(OBJECTIVES))}")
    learning_rate = _number(
        value.get("learning_rate", defaults.learning_rate), f"{section}.learning_rate", float
    )
    if learning_rate <= 0:
        raise ConfigError(f"{section}.learning_rate must be positive.")
    l2 = _number(value.get("l2", defaults.l2), f"{section}.l2", float)
    if l2 < 0:
        raise ConfigError(f"{section}.l2 cannot be negative.")
    max_iterations = _number(
        value.get("max_iterations", defaults.max_iterations), f"{section}.max_iterations", int
    )
    if max_iterations < 0:
        raise ConfigError(f"{section}.max_iterations cannot be negative.")
    return {
        "optimizer": optimizer,
        "learning_rate": learning_rate,
        "l2": l2,
        "tolerance": _number(value.get("tolerance", defaults.tolerance), f"{section}.tolerance", float),
        "objective": objective,
        "max_iterations": max_iterations,
        "parallel": bool(value.get("parallel", defaults.parallel)),
    }


def _parse_naive_bayes(value: dict[str, Any]) -> NaiveBayesConfig:
    pseudo_count = _number(value.get("pseudo_count", 0.1), "naive_bayes.pseudo_count", float)
    if pseudo_count <= 0:
        raise ConfigError("naive_bayes.pseudo_count must be positive.")
    return NaiveBayesConfig(pseudo_count=pseudo_count)


def _parse_svm(value: dict[str, Any]) -> SVMConfig:
    defaults = SVMConfig()
    c_value = _number(value.get("C", defaults.C), "svm.C", float)
    if c_value <= 0:
        raise ConfigError("svm.C must be positive.")
    max_iterations = _number(value.get("max_iterations", defaults.max_iterations), "svm.max_iterations", int)
    if max_iterations < 1:
        raise ConfigError("svm.max_iterations must be at least 1.")
    return SVMConfig(
        C=c_value,
        tolerance=_number(value.get("tolerance", defaults.tolerance), "svm.tolerance", float),
        max_iterations=max_iterations,
        parallel=bool(value.get("parallel", defaults.parallel)),
    )


def _parse_tree(value: dict[str, Any]) -> TreeConfig:
    max_depth = value.get("max_depth")
    if max_depth is not None:
        max_depth = _number(max_depth, "tree.max_depth", int)
        if max_depth < 1:
            raise ConfigError("tree.max_depth must be at least 1.")
    min_samples_leaf = _number(value.get("min_samples_leaf", 1), "tree.min_samples_leaf", int)
    if min_samples_leaf < 1:
        raise ConfigError("tree.min_samples_leaf must be at least 1.")
    return TreeConfig(max_depth=max_depth, min_samples_leaf=min_samples_leaf)


def _parse_logging(value: Any) -> LoggingConfig:
    if value is None:
        return LoggingConfig()
    if not isinstance(value, dict):
        raise ConfigError("logging must be a mapping.")
    level = str(value.get("level", DEFAULT_LOG_LEVEL)).lower()
    debug_file = bool(value.get("debug_file", False))
    return LoggingConfig(level=level, debug_file=debug_file)


def _number(value: Any, field_name: str, kind: type) -> Any:
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be a number.")
    try:
        return kind(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be a number.") from exc


__all__ = [
    "BatchConfig",
    "Config",
    "ConfigError",
    "GradientConfig",
    "LoggingConfig",
    "NaiveBayesConfig",
    "SVMConfig",
    "TRAINER_NAMES",
    "TreeConfig",
    "default_config",
    "load_config",
    "parse_config",
]
