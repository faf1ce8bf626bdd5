"""SNF admin and reporting service."""
