"""Family calendar dashboard backend."""
