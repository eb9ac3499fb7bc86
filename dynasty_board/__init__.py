"""Dynasty Board

Fantasy football value projections for Sleeper leagues and a live draft
board that tracks taken players from the draft feed.
"""

__version__ = "0.1.0"
__author__ = "Fantasy Football Analytics"

from .models.projection_engine import ProjectionEngine
from .draft.reconciler import DraftReconciler
from .draft.session import DraftSession
from .data.sleeper_client import SleeperClient

__all__ = ["ProjectionEngine", "DraftReconciler", "DraftSession", "SleeperClient"]
