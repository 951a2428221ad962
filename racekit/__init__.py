"""Race kit distribution console."""
