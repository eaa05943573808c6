"""Trip domain: saved trips, their itineraries and lifecycle."""
