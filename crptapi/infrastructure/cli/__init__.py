"""Console output using rich."""
