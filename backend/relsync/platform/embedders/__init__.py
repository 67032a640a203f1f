"""Embedders for dense vector computation."""

from .openai import DenseEmbedder

__all__ = ["DenseEmbedder"]
