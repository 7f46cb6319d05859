"""Core resilience layer: request execution, retry policy and chart identity cache."""
