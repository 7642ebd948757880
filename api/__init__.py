"""HTTP API for Search Insights Engine."""
