"""Classifier implementations and infrastructure."""

from .base import BaseClassifier, Classifier
from .linear import LinearClassifier
from .tree import DecisionTreeClassifier

__all__ = [
    "BaseClassifier",
    "Classifier",
    "DecisionTreeClassifier",
    "LinearClassifier",
]
