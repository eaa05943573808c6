"""Planner domain: slot-filling conversations that end in a generated itinerary."""
