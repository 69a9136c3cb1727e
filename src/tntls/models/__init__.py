from .tnt import TNT, FallbackController, solve

__all__ = ["TNT", "FallbackController", "solve"]
