"""SEO draft pipeline: keyword research, strategy, outline approval and content generation."""

__version__ = "1.0.0"
