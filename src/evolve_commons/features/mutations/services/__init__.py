"""Mutation services."""

from .mutation_coordinator import OptimisticMutationCoordinator

__all__ = ["OptimisticMutationCoordinator"]
