"""Domain models: documents, envelopes and rate limit values."""
