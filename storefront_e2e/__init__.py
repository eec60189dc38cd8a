"""Browser-driven checkout journey checks for a demo storefront."""

__version__ = "1.0.0"
