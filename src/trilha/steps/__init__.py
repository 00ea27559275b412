"""Pipelines de exemplo construídos sobre o Trilha."""

from .iris import register_iris_targets

__all__ = ["register_iris_targets"]
