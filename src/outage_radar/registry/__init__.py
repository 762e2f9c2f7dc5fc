"""Service catalogue, status models and cache."""
