"""Domain Interfaces (Ports):

Defines the contracts (Abstract Base Classes) that infrastructure components
must implement. The client depends on these interfaces, not on concrete
encoders, HTTP libraries or consoles.
"""
