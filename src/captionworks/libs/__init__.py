"""Shared client libraries for CaptionWorks applications."""
