"""Local Rails Docker stack CLI.

The command surface is implemented with Typer and Rich for better help and
error ergonomics, while every operation delegates to docker-compose/docker.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
