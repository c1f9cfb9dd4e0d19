"""Configuration, trajectory logging and evaluation metrics."""
