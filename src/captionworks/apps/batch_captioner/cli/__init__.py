"""CLI package for the batch captioner."""
