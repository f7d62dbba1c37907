"""WatchTalk - discussion threads, likes, notifications and activity feed for watched titles."""

__version__ = "0.1.0"
