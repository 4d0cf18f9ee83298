"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the client to the outside world (the registry over HTTP, local files,
configuration sources, the console) by implementing the interfaces defined in
the domain layer. Also includes the rate governor and retry policy.
"""
