"""webhook-dispatcher - persist incoming webhooks and fan them out to targets."""
__version__ = "0.1.0"
