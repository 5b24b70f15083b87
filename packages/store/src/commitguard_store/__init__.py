"""Review cache: per-project record of files that already passed review."""
