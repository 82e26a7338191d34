"""ORM base, models and column helpers."""
