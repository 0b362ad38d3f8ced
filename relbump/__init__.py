"""relbump - cut a minor release tag from the release branch."""

__version__ = "0.3.0"
