"""SMS command dispatch and history API for GPS tracker fleets."""

__version__ = "2.0.0"
