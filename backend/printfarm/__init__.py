"""
PrintFarm order tracking backend.

Tracks orders, products and printable items through the print-production
workflow: queueing, printing, assembly, packing and shipping, with reprint
handling and a full status audit trail.
"""

__version__ = "1.0.0"
