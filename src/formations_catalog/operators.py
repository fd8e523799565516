from enum import Enum


class PredicateOperator(str, Enum):
    """Operators a predicate tree may contain."""

    # Comparison
    EQ = "eq"
    ILIKE = "ilike"

    # Logical operators
    AND = "and"
    OR = "or"
    NOT = "not"
