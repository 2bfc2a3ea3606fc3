"""newsbrief: a single-page news summary server."""

__version__ = "0.1.0"
