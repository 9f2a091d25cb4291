"""State layer.

This package owns the fix event bus, the register update policy and the
Modbus register bank that is the single source of truth for the latest fix.
"""
