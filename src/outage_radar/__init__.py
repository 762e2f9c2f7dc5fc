"""outage-radar: third-party service outage aggregator."""

__version__ = "0.1.0"
