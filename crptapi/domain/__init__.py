"""Domain Layer: value objects, errors, events and interfaces (ports)."""
