"""CaptionWorks: batch captioning of image folders with local vision models."""

__version__ = "0.1.0"
