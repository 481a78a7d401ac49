from .resolve_sources import ResolutionEngine

__all__ = ["ResolutionEngine"]
