"""HeveaGuard rubber-leaf disease classification service."""

__version__ = "1.0.0"
