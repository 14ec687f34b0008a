"""Blog content service: posts, drafts, versions, scheduled publishing, views and settings."""

__version__ = "1.0.0"
