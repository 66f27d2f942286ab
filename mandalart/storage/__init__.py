from .interface import ProjectStore
from .memory import InMemoryProjectStore

__all__ = ["ProjectStore", "InMemoryProjectStore"]
