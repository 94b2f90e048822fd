"""Parse web posts into resources and save them to storage through a task queue."""

__version__ = "0.1.0"