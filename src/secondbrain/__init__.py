"""Second Brain - save, tag and semantically search media links."""

__version__ = "0.1.0"
