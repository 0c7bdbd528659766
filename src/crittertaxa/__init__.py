"""crittertaxa: resolve species names and file them under display-friendly groups."""

__version__ = "0.1.0"
