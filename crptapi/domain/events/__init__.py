"""Domain Event definitions.

Represents significant occurrences within the client (windows opening and
resetting, submissions starting, succeeding or failing) that callers may
observe through an event listener.
"""
