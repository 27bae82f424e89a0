"""Language analyzer interface, shared metric helpers and the generic fallback.

Language analyzers are independent implementations of ``LanguageAnalyzer``.
They reuse behaviour by delegating to a ``GenericAnalyzer`` instance, not by
subclassing it.
"""

import math
import re
from collections import Counter
from dataclasses import dataclass
from typing import Callable, List, Optional, Pattern, Protocol, Sequence, Union

from .models import CodeIssue, CodeMetrics, IssueCategory, Severity

_COMPLEXITY_KEYWORDS = (
    "if", "else", "elif", "while", "for", "foreach", "do", "switch",
    "case", "catch", "except", "and", "or", "try",
)
_COMPLEXITY_OPERATORS = ("&&", "||", "?")
_OPERATOR_RE = re.compile(r"[+\-*/%=<>!&|^~?:;,(){}\[\]]")
_OPERAND_RE = re.compile(r"\b[a-zA-Z_][a-zA-Z0-9_]*\b")


class LanguageAnalyzer(Protocol):
    """What a per-language analyzer must provide."""

    def analyze_syntax(self, code: str) -> List[CodeIssue]: ...

    def analyze_performance(self, code: str) -> List[CodeIssue]: ...

    def analyze_security(self, code: str) -> List[CodeIssue]: ...

    def analyze_style(self, code: str) -> List[CodeIssue]: ...

    def calculate_metrics(self, code: str) -> CodeMetrics: ...

    def generate_suggestions(self, issues: List[CodeIssue], metrics: CodeMetrics) -> List[str]: ...


@dataclass(frozen=True)
class LineRule:
    """A per-line heuristic: a regex or predicate plus the issue it produces."""
    match: Union[Pattern[str], Callable[[str], bool]]
    severity: Severity
    message: str
    category: IssueCategory
    rule: str
    suggestion: Optional[str] = None
    fixable: bool = False

    def hit(self, line: str) -> Optional[int]:
        """Column of the match, or None when the rule doesn't fire."""
        if not isinstance(self.match, re.Pattern):
            return 0 if self.match(line) else None
        found = self.match.search(line)
        return found.start() if found else None


def scan_lines(code: str, rules: Sequence[LineRule]) -> List[CodeIssue]:
    issues: List[CodeIssue] = []
    for line_number, line in enumerate(code.split("\n"), start=1):
        for rule in rules:
            column = rule.hit(line)
            if column is None:
                continue
            issues.append(CodeIssue(
                severity=rule.severity,
                message=rule.message,
                line=line_number,
                column=column,
                category=rule.category,
                rule=rule.rule,
                suggestion=rule.suggestion,
                fixable=rule.fixable,
            ))
    return issues


def count_lines(code: str) -> int:
    """Non-blank lines."""
    return sum(1 for line in code.split("\n") if line.strip())


def cyclomatic_complexity(code: str) -> int:
    complexity = 1
    for keyword in _COMPLEXITY_KEYWORDS:
        complexity += len(re.findall(rf"\b{keyword}\b", code, flags=re.IGNORECASE))
    for operator in _COMPLEXITY_OPERATORS:
        complexity += code.count(operator)
    return complexity


def halstead_volume(code: str) -> float:
    operators = _OPERATOR_RE.findall(code)
    operands = _OPERAND_RE.findall(code)
    vocabulary = len(set(operators)) + len(set(operands))
    length = len(operators) + len(operands)
    return length * math.log2(vocabulary or 1)


def maintainability_index(code: str, complexity: int) -> int:
    """Simplified maintainability index, clamped to 0..100."""
    volume = max(halstead_volume(code), 1.0)
    loc = max(count_lines(code), 1)
    mi = 171 - 5.2 * math.log(volume) - 0.23 * complexity - 16.2 * math.log(loc)
    return round(min(100.0, max(0.0, mi)))


def duplicated_lines(code: str) -> int:
    counts = Counter(line.strip() for line in code.split("\n") if line.strip())
    return sum(count - 1 for count in counts.values() if count > 1)


def nested_loop_issues(code: str, loop_keyword: str = "for", window: int = 10) -> List[CodeIssue]:
    issues: List[CodeIssue] = []
    lines = code.split("\n")
    for index, line in enumerate(lines):
        if loop_keyword not in line.lower():
            continue
        if any(loop_keyword in following.lower() for following in lines[index + 1:index + window]):
            issues.append(CodeIssue(
                severity=Severity.WARNING,
                message="Nested loops detected - consider optimization",
                line=index + 1,
                column=0,
                category=IssueCategory.PERFORMANCE,
                rule="nested-loops",
                suggestion="Consider using more efficient algorithms or data structures",
            ))
    return issues


def _unbalanced_brackets(line: str) -> bool:
    return len(re.findall(r"[({\[]", line)) != len(re.findall(r"[)}\]]", line))


GENERIC_SYNTAX_RULES = (
    LineRule(_unbalanced_brackets, Severity.WARNING, "Potential unmatched brackets",
             IssueCategory.SYNTAX, "unmatched-brackets"),
    LineRule(lambda line: len(line) > 120, Severity.INFO, "Line too long (>120 characters)",
             IssueCategory.STYLE, "line-length", "Consider breaking this line into multiple lines"),
)

GENERIC_SECURITY_RULES = (
    LineRule(re.compile(r"\b(eval|exec)\(", re.IGNORECASE), Severity.ERROR,
             "Use of eval() or exec() can be dangerous", IssueCategory.SECURITY,
             "dangerous-eval", "Avoid using eval() or exec() with user input"),
    LineRule(lambda line: "password" in line.lower() and "=" in line, Severity.WARNING,
             "Potential hardcoded password", IssueCategory.SECURITY, "hardcoded-password",
             "Use environment variables or secure storage for passwords"),
)

GENERIC_STYLE_RULES = (
    LineRule(re.compile(r"[ \t]+$"), Severity.INFO, "Trailing whitespace", IssueCategory.STYLE,
             "trailing-whitespace", "Remove trailing whitespace", fixable=True),
    LineRule(lambda line: "\t" in line and "  " in line, Severity.WARNING,
             "Mixed tabs and spaces for indentation", IssueCategory.STYLE, "mixed-indentation",
             "Use consistent indentation (either tabs or spaces)"),
)


class GenericAnalyzer:
    """Language-agnostic heuristics; also the fallback for unknown languages."""

    def analyze_syntax(self, code: str) -> List[CodeIssue]:
        return scan_lines(code, GENERIC_SYNTAX_RULES)

    def analyze_performance(self, code: str) -> List[CodeIssue]:
        return nested_loop_issues(code)

    def analyze_security(self, code: str) -> List[CodeIssue]:
        return scan_lines(code, GENERIC_SECURITY_RULES)

    def analyze_style(self, code: str) -> List[CodeIssue]:
        return scan_lines(code, GENERIC_STYLE_RULES)

    def calculate_metrics(self, code: str) -> CodeMetrics:
        complexity = cyclomatic_complexity(code)
        mi = maintainability_index(code, complexity)
        duplicated = duplicated_lines(code)
        return CodeMetrics(
            lines_of_code=count_lines(code),
            cyclomatic_complexity=complexity,
            maintainability_index=mi,
            technical_debt=max(0, 100 - mi),
            duplicated_lines=duplicated,
            code_smells=complexity // 5 + duplicated // 10,
        )

    def generate_suggestions(self, issues: List[CodeIssue], metrics: CodeMetrics) -> List[str]:
        suggestions = []
        if metrics.lines_of_code > 500:
            suggestions.append("Consider breaking this file into smaller modules")
        if sum(1 for i in issues if i.category == IssueCategory.STYLE) > 10:
            suggestions.append("Use a code formatter to improve code style consistency")
        return suggestions
