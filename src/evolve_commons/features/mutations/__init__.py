"""Optimistic mutation feature."""

from .entities import MutationOperation, MutationState, ReactiveState
from .services import OptimisticMutationCoordinator

__all__ = [
    "MutationOperation",
    "MutationState",
    "ReactiveState",
    "OptimisticMutationCoordinator",
]
