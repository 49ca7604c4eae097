"""Validation outcome shared by the availability and scheduling validators."""

from dataclasses import dataclass, field


@dataclass
class ValidationResult:
    """Blocking errors and advisory warnings, in the order they were found.

    ``valid`` is False as soon as one blocking error is recorded. Warnings never
    affect validity.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def block(self, message: str) -> "ValidationResult":
        self.errors.append(message)
        return self

    def warn(self, message: str) -> "ValidationResult":
        self.warnings.append(message)
        return self

    def merge(self, *others: "ValidationResult") -> "ValidationResult":
        """Fold the findings of ``others`` into this result, preserving order."""
        for other in others:
            self.errors.extend(other.errors)
            self.warnings.extend(other.warnings)
        return self

    def to_dict(self) -> dict:
        return {"valid": self.valid, "errors": list(self.errors), "warnings": list(self.warnings)}
