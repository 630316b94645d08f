"""Tradable symbol lookup."""

from signal_desk.symbols.directory import SymbolDirectory, build_listing, normalize_pair

__all__ = ["SymbolDirectory", "build_listing", "normalize_pair"]
