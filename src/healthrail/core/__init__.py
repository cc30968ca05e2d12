"""Pure domain logic: models, health scoring, divergence and formats."""
