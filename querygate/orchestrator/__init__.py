"""Request orchestration for QueryGate."""

from .pipeline import QueryPipeline, build_pipeline

__all__ = ["QueryPipeline", "build_pipeline"]
