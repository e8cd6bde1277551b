"""Bundle a project directory into a single annotated text file."""

__version__ = "0.1.0"
