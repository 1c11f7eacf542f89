"""jobspine command line interface."""

from jobspine.cli.app import app

__all__ = ["app"]
