from .services import DetailRestorer, RestoreOptions

__all__ = ["DetailRestorer", "RestoreOptions"]
