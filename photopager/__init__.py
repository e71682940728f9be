"""photopager — keyset-paginated, windowed browsing of large photo collections."""

__version__ = "1.0.0"
