"""
Ready-made Pipeline Stages.
"""

from .heads import LinearStage, MLPStage

__all__ = ["LinearStage", "MLPStage"]
