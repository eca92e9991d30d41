"""Mutation entities."""

from .mutation import MutationOperation, MutationState
from .reactive_state import ReactiveState

__all__ = ["MutationOperation", "MutationState", "ReactiveState"]
