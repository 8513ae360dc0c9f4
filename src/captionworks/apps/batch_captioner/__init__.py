"""Batch captioner: write model-generated descriptions next to images."""
