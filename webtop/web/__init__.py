"""Web API for the webtop dashboard."""
