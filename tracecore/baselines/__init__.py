"""Project baselines: creation, listing, and comparison."""

from tracecore.baselines.manager import BaselineManager
from tracecore.baselines.storage import BaselineStorage

__all__ = ["BaselineManager", "BaselineStorage"]
