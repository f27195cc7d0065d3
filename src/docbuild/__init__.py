"""Build, preview and live-reload the library and its documentation site."""

__version__ = "0.1.0"
