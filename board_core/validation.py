"""
Layout validation - Check a board's geometry for problems.

Provides validation that can be used by both the backend and MCP tools
to spot corrupted or awkward layouts before they confuse the user.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import LayoutItem


class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Invalid state, must be fixed
    WARNING = "warning"  # Potential problem, should review
    INFO = "info"        # Informational, may be intentional


@dataclass
class ValidationIssue:
    """A single validation issue found on a board."""
    severity: IssueSeverity
    message: str
    item_id: str | None = None
    other_id: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "type": self.severity.value,
            "message": self.message
        }
        if self.item_id:
            result["item_id"] = self.item_id
        if self.other_id:
            result["other_id"] = self.other_id
        return result


def _overlaps(a: "LayoutItem", b: "LayoutItem") -> bool:
    ax, ay, ar, ab = a.bounds()
    bx, by, br, bb = b.bounds()
    return ax < br and bx < ar and ay < bb and by < ab


def validate_layout(items: Sequence["LayoutItem"]) -> list[ValidationIssue]:
    """
    Validate a board's items and return a list of issues.

    Checks for:
    - Duplicate item IDs - ERROR
    - Non-finite position or size - ERROR
    - Non-positive size - ERROR
    - Negative position - WARNING
    - Overlapping items - INFO
    - Empty board - INFO

    Args:
        items: The board's layout items

    Returns:
        List of ValidationIssue objects
    """
    issues: list[ValidationIssue] = []

    if not items:
        issues.append(ValidationIssue(
            severity=IssueSeverity.INFO,
            message="Board has no widgets"
        ))
        return issues

    # Duplicate IDs
    seen: set[str] = set()
    for item in items:
        if item.id in seen:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Duplicate widget ID: {item.id}",
                item_id=item.id
            ))
        seen.add(item.id)

    # Geometry checks
    valid: list["LayoutItem"] = []
    for item in items:
        values = (item.position.x, item.position.y, item.size.w, item.size.h)
        if not all(math.isfinite(v) for v in values):
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message="Widget has non-finite position or size",
                item_id=item.id
            ))
            continue

        if item.size.w <= 0 or item.size.h <= 0:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Widget has non-positive size {item.size.w}x{item.size.h}",
                item_id=item.id
            ))
            continue

        if item.position.x < 0 or item.position.y < 0:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=f"Widget is outside the board at ({item.position.x}, {item.position.y})",
                item_id=item.id
            ))

        valid.append(item)

    # Overlaps (pairwise, sorted for stable output)
    valid.sort(key=lambda i: i.id)
    for i, a in enumerate(valid):
        for b in valid[i + 1:]:
            if _overlaps(a, b):
                issues.append(ValidationIssue(
                    severity=IssueSeverity.INFO,
                    message=f"Widgets {a.id} and {b.id} overlap",
                    item_id=a.id,
                    other_id=b.id
                ))

    return issues


def validation_summary(issues: list[ValidationIssue]) -> dict:
    """
    Create a summary of validation issues.

    Args:
        issues: List of validation issues

    Returns:
        Dictionary with counts by severity
    """
    return {
        "total": len(issues),
        "errors": len([i for i in issues if i.severity == IssueSeverity.ERROR]),
        "warnings": len([i for i in issues if i.severity == IssueSeverity.WARNING]),
        "info": len([i for i in issues if i.severity == IssueSeverity.INFO]),
        "valid": len([i for i in issues if i.severity == IssueSeverity.ERROR]) == 0
    }
