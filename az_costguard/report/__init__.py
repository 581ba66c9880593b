"""Cost report output."""
