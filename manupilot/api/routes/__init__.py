"""API Routes for the ManuPilot sourcing API."""

from manupilot.api.routes import account, projects, quotes, reviews, rfq, samples

__all__ = ["account", "projects", "quotes", "reviews", "rfq", "samples"]
