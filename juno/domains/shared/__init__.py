"""Shared domain components - Generic patterns and utilities."""

from juno.domains.shared.repository import GenericRepository
from juno.domains.shared.specifications import Specification

__all__ = ["GenericRepository", "Specification"]
