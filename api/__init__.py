"""HTTP API for the survey pipeline."""
