"""Domain layer: rich progression models, value objects and domain events."""
