"""Synchronize app-store listing metadata with App Store Connect and Google Play."""

__version__ = "0.4.0"
