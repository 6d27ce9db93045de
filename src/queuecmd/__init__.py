"""Command-line front end over simple, task and pubsub queues."""

__version__ = "0.3.0"
