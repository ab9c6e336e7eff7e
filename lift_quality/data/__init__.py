"""Dataset retrieval."""
