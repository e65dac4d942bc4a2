"""Command line interface (``rowspine``)."""
