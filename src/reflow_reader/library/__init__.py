"""On-disk book catalog."""
