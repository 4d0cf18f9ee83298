"""API Resilience Implementations.

Contains the rate governor that bounds outbound requests per time window and
an optional caller-side retry policy with exponential backoff.
Bounded Context: API Resilience
"""
