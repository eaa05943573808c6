"""Itinerary domain: the canonical itinerary document and the services that build and edit it."""
