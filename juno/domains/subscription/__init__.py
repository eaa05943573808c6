"""Subscription domain - plans and feature entitlements."""
