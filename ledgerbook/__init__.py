"""
Ledgerbook - Source Package

A personal multi-store income and expense ledger with an AI assistant.

DESIGN PRINCIPLES:
1. Memory is the authority, the snapshot file is its mirror
2. Validate once at the boundary, fail visibly
3. One lock over the whole collection, never held across I/O
4. Every command outcome is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Ledgerbook Team"
