"""
inventory — domain rules for inventories and their items.

Provides:
  • Custom-ID rendering and atomic per-inventory counters
  • Custom field slot helpers (active fields, value masking)
  • Visibility / ownership checks shared by the API routes
"""
