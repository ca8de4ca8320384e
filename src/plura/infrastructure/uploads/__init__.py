"""Declared upload routes and their limits."""

from .file_router import FILE_ROUTES, FileRoute, get_file_route

__all__ = ["FILE_ROUTES", "FileRoute", "get_file_route"]
