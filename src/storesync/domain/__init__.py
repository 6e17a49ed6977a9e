"""Domain layer: declared models, reconciliation and release publishing."""
