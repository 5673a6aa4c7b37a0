"""
Label selector evaluation.

Implements the Kubernetes ``LabelSelector`` semantics used by workloads,
services and NetworkPolicies:

- ``None`` selects nothing
- ``{}`` selects everything
- ``matchLabels`` entries are ANDed with ``matchExpressions``
- ``matchExpressions`` support ``In``, ``NotIn``, ``Exists`` and ``DoesNotExist``

Malformed selectors raise :class:`InvalidSelectorError`.
"""

from typing import Any

from k8s_topology.errors import InvalidSelectorError

_VALUE_OPERATORS = {"In", "NotIn"}
_EXISTENCE_OPERATORS = {"Exists", "DoesNotExist"}


class Requirement:
    def __init__(self, key: str, operator: str, values: list[str] | None = None) -> None:
        if not key:
            raise InvalidSelectorError("selector requirement key must not be empty")
        values = list(values or [])
        if operator in _VALUE_OPERATORS:
            if not values:
                raise InvalidSelectorError(
                    f"values must be non-empty for operator {operator!r} on key {key!r}"
                )
        elif operator in _EXISTENCE_OPERATORS:
            if values:
                raise InvalidSelectorError(
                    f"values must be empty for operator {operator!r} on key {key!r}"
                )
        else:
            raise InvalidSelectorError(f"{operator!r} is not a valid label selector operator")

        self.key = key
        self.operator = operator
        self.values = sorted(values)

    def matches(self, labels: dict[str, str]) -> bool:
        if self.operator == "In":
            return self.key in labels and labels[self.key] in self.values
        if self.operator == "NotIn":
            return self.key not in labels or labels[self.key] not in self.values
        if self.operator == "Exists":
            return self.key in labels
        return self.key not in labels

    def __str__(self) -> str:
        if self.operator == "Exists":
            return self.key
        if self.operator == "DoesNotExist":
            return f"!{self.key}"
        if self.operator == "In" and len(self.values) == 1:
            return f"{self.key}={self.values[0]}"
        op = "in" if self.operator == "In" else "notin"
        return f"{self.key} {op} ({','.join(self.values)})"


class LabelSelector:
    """
    Parsed label selector.

    Example:
        >>> selector = LabelSelector.parse({"matchLabels": {"app": "api"}})
        >>> selector.matches({"app": "api", "tier": "web"})
        True
        >>> selector.to_query()
        'app=api'
    """

    def __init__(self, requirements: list[Requirement], match_nothing: bool = False) -> None:
        self.requirements = sorted(requirements, key=lambda r: (r.key, r.operator))
        self.match_nothing = match_nothing

    @classmethod
    def nothing(cls) -> "LabelSelector":
        return cls([], match_nothing=True)

    @classmethod
    def everything(cls) -> "LabelSelector":
        return cls([])

    @classmethod
    def from_set(cls, labels: dict[str, str] | None) -> "LabelSelector":
        """Equality-based selector, as used by ``Service.spec.selector``."""
        return cls([Requirement(key, "In", [value]) for key, value in (labels or {}).items()])

    @classmethod
    def parse(cls, selector: dict[str, Any] | None) -> "LabelSelector":
        """Parse a ``LabelSelector`` document (``matchLabels``/``matchExpressions``)."""
        if selector is None:
            return cls.nothing()
        if not isinstance(selector, dict):
            raise InvalidSelectorError(f"label selector must be a mapping, got {type(selector).__name__}")

        requirements: list[Requirement] = []
        for key, value in (selector.get("matchLabels") or {}).items():
            requirements.append(Requirement(key, "In", [str(value)]))

        for expression in selector.get("matchExpressions") or []:
            if not isinstance(expression, dict):
                raise InvalidSelectorError("match expression must be a mapping")
            requirements.append(
                Requirement(
                    expression.get("key", ""),
                    expression.get("operator", ""),
                    expression.get("values"),
                )
            )

        return cls(requirements)

    def matches(self, labels: dict[str, str] | None) -> bool:
        if self.match_nothing:
            return False
        labels = labels or {}
        return all(requirement.matches(labels) for requirement in self.requirements)

    def is_empty(self) -> bool:
        return not self.match_nothing and not self.requirements

    def to_query(self) -> str:
        """Render as a ``labelSelector`` query string for list calls."""
        return ",".join(str(requirement) for requirement in self.requirements)

    def __str__(self) -> str:
        if self.match_nothing:
            return "<none>"
        return self.to_query() or "<everything>"
