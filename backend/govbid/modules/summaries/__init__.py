"""Summary acquisition, caching, and structured rendering."""
