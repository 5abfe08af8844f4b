"""Recording-session orchestrator with a cascading set of capture backends."""

__version__ = "0.1.0"
