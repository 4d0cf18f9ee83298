"""Document encoder implementations."""
