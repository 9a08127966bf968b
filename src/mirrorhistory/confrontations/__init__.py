"""Confrontations: uncomfortable cross-domain findings per period."""

from mirrorhistory.confrontations.generator import ConfrontationGenerator

__all__ = ["ConfrontationGenerator"]
