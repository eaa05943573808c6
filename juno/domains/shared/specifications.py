"""Specification Pattern for composable query conditions."""

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from sqlalchemy import and_, not_

from juno.infra.database import Base

T = TypeVar("T", bound=Base)


class Specification(ABC, Generic[T]):
    """Abstract base class for specifications.

    Specifications encapsulate query conditions in reusable,
    composable objects.

    Example:
        visible = TripOwnedBySpec(user_id) & ActiveTripSpec() & ~ArchivedTripSpec()
        trips = await repo.find_many(visible.to_expression())
    """

    @abstractmethod
    def to_expression(self) -> Any:
        """Convert specification to SQLAlchemy expression."""
        ...

    def __and__(self, other: "Specification[T]") -> "AndSpecification[T]":
        return AndSpecification(self, other)

    def __invert__(self) -> "NotSpecification[T]":
        return NotSpecification(self)


class AndSpecification(Specification[T]):
    """Combines two specifications with AND."""

    def __init__(self, left: Specification[T], right: Specification[T]) -> None:
        self.left = left
        self.right = right

    def to_expression(self) -> Any:
        return and_(self.left.to_expression(), self.right.to_expression())


class NotSpecification(Specification[T]):
    """Negates a specification."""

    def __init__(self, spec: Specification[T]) -> None:
        self.spec = spec

    def to_expression(self) -> Any:
        return not_(self.spec.to_expression())
