"""Domain layer: proposal model, consolidation engine and the draft editor."""
