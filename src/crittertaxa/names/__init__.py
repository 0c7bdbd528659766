"""Scientific name verification against Global Names."""
