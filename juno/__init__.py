"""Juno: conversational travel itinerary planner."""
