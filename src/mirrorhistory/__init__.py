"""MirrorHistory - cross-domain temporal correlation engine for a life journal."""

__version__ = "0.1.0"
