"""Terminal client for registering with the Popcorn API and submitting solutions to its GPU leaderboards."""

__version__ = "0.1.0"