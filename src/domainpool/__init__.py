"""domainpool — custom-domain allocation engine."""

__version__ = "0.4.0"
