"""Settings, retry and TLS helpers, program identity and metric registries for a health-probing service."""

__version__ = "1.7.0"
__all__ = ["common", "settings", "identity", "metric"]