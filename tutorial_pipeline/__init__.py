"""Transcript-to-tutorial pipeline: chunk, generate with model fallback, merge."""
