"""Declarative management of directory applications, groups and users."""

__version__ = "0.1.0"
