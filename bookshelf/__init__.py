"""Digital Bookshelf: personal book tracking with AI reading recommendations."""

__version__ = "1.0.0"
