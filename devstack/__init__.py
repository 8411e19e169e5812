"""DevStack Link: developer portfolio and link-in-bio API."""

__version__ = "0.1.0"
