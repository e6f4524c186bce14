"""OrderDesk - order lifecycle, numbering, pricing and billing core."""

__version__ = "1.0.0"
