"""Version information for keyreg."""

__version__ = "0.2.0"
