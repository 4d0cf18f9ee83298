"""HTTP submitter implementations."""
