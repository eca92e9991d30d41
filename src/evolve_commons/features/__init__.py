"""Feature modules for evolve-commons."""
