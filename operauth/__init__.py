"""Challenge-response authentication for privileged operators."""

__version__ = "0.1.0"
