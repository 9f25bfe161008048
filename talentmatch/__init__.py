"""talentmatch: authentication callback and identity-linking service."""

__version__ = "0.1.0"
