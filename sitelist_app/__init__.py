"""Admin service for the site list stored in the navigation tree."""

__version__ = "0.1.0"
