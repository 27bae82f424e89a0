"""Result types produced by the code analyzers."""

import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class Severity(str, Enum):
    """Issue severity level, most severe first."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    HINT = "hint"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER[self]


_SEVERITY_ORDER = {
    Severity.ERROR: 0,
    Severity.WARNING: 1,
    Severity.INFO: 2,
    Severity.HINT: 3,
}


class IssueCategory(str, Enum):
    SYNTAX = "syntax"
    LOGIC = "logic"
    PERFORMANCE = "performance"
    SECURITY = "security"
    STYLE = "style"
    MAINTAINABILITY = "maintainability"


_issue_counter = itertools.count(1)


@dataclass
class CodeIssue:
    """Individual analyzer finding."""
    severity: Severity
    message: str
    line: int
    column: int
    category: IssueCategory
    rule: Optional[str] = None
    suggestion: Optional[str] = None
    fixable: bool = False
    id: str = ""

    def __post_init__(self):
        if not self.id:
            self.id = f"{self.category.value}-{next(_issue_counter)}"

    def describe(self) -> str:
        """One-line form used when handing issues to the fix capability."""
        return f"{self.severity.value}: {self.message} (Line {self.line})"


@dataclass
class CodeMetrics:
    lines_of_code: int = 0
    cyclomatic_complexity: int = 1
    maintainability_index: int = 100
    technical_debt: int = 0
    duplicated_lines: int = 0
    code_smells: int = 0


@dataclass
class AnalysisResult:
    """Aggregated analyzer output for one code string."""
    issues: List[CodeIssue] = field(default_factory=list)
    metrics: CodeMetrics = field(default_factory=CodeMetrics)
    suggestions: List[str] = field(default_factory=list)
    overall_score: int = 100

    def count(self, severity: Severity) -> int:
        return sum(1 for issue in self.issues if issue.severity == severity)

    @property
    def summary(self) -> str:
        """Human-readable summary."""
        return (
            f"Score {self.overall_score}/100: {len(self.issues)} issues "
            f"({self.count(Severity.ERROR)} errors, {self.count(Severity.WARNING)} warnings, "
            f"{self.count(Severity.INFO)} info)"
        )
