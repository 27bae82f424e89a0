"""Python heuristics (PEP 8 style, common pitfalls, unsafe calls)."""

import ast
import re
from typing import List, Optional

from .base import GenericAnalyzer, LineRule, scan_lines
from .models import CodeIssue, CodeMetrics, IssueCategory, Severity

_LIST_COMPREHENSION_RE = re.compile(r"\[.*for.*in.*\]")
_IMPORT_RE = re.compile(r"^import\s+(\w+)|^from\s+[\w.]+\s+import\s+(\w+)")


def _bad_function_name(line: str) -> bool:
    found = re.search(r"def\s+([a-zA-Z_][a-zA-Z0-9_]*)", line)
    return bool(found) and not re.fullmatch(r"[a-z_][a-z0-9_]*", found.group(1))


def _bad_class_name(line: str) -> bool:
    found = re.search(r"^\s*class\s+([a-zA-Z_][a-zA-Z0-9_]*)", line)
    return bool(found) and not re.fullmatch(r"[A-Z][a-zA-Z0-9]*", found.group(1))


SYNTAX_RULES = (
    LineRule(lambda line: line.strip() == "except:", Severity.WARNING,
             "Bare except clause catches all exceptions", IssueCategory.LOGIC, "bare-except",
             "Specify exception types or use 'except Exception:'"),
    LineRule(re.compile(r"def\s+\w+\([^)]*=\s*(\[\]|\{\})"), Severity.WARNING,
             "Mutable default argument detected", IssueCategory.LOGIC, "mutable-default",
             "Use None as default and create mutable object inside function"),
)

PERFORMANCE_RULES = (
    LineRule(lambda line: ".append(" in line and "for " in line, Severity.INFO,
             "Consider using list comprehension for better performance",
             IssueCategory.PERFORMANCE, "list-comprehension",
             "Use list comprehension: [expr for item in iterable]"),
    LineRule(re.compile(r"^\s*global\s"), Severity.WARNING,
             "Global variables can impact performance and maintainability",
             IssueCategory.PERFORMANCE, "global-usage",
             "Consider passing variables as parameters instead"),
)

SECURITY_RULES = (
    LineRule(re.compile(r"\beval\("), Severity.ERROR, "eval() usage is dangerous",
             IssueCategory.SECURITY, "no-eval", "Avoid using eval() with untrusted input"),
    LineRule(re.compile(r"\bexec\("), Severity.ERROR, "exec() usage can be dangerous",
             IssueCategory.SECURITY, "no-exec", "Avoid using exec() with untrusted input"),
    LineRule(re.compile(r"os\.system\(|subprocess\.call\("), Severity.WARNING,
             "Shell command execution detected", IssueCategory.SECURITY, "shell-injection",
             "Validate and sanitize input before shell execution"),
    LineRule(re.compile(r"pickle\.loads?\("), Severity.WARNING,
             "Pickle deserialization can be unsafe", IssueCategory.SECURITY, "unsafe-pickle",
             "Only unpickle data from trusted sources"),
)

STYLE_RULES = (
    LineRule(lambda line: len(line) > 79, Severity.WARNING,
             "Line too long (>79 characters) - PEP 8 violation", IssueCategory.STYLE,
             "line-length", "Break long lines according to PEP 8 guidelines"),
    LineRule(_bad_function_name, Severity.WARNING, "Function name should be in snake_case",
             IssueCategory.STYLE, "function-naming", "Use snake_case for function names (PEP 8)"),
    LineRule(_bad_class_name, Severity.WARNING, "Class name should be in PascalCase",
             IssueCategory.STYLE, "class-naming", "Use PascalCase for class names (PEP 8)"),
)


class PythonAnalyzer:
    """Heuristic analyzer for Python source."""

    def __init__(self, fallback: Optional[GenericAnalyzer] = None):
        self.fallback = fallback or GenericAnalyzer()

    def analyze_syntax(self, code: str) -> List[CodeIssue]:
        issues: List[CodeIssue] = []
        try:
            ast.parse(code)
        except SyntaxError as e:
            issues.append(CodeIssue(
                severity=Severity.ERROR,
                message=f"Syntax error: {e.msg}",
                line=e.lineno or 1,
                column=max((e.offset or 1) - 1, 0),
                category=IssueCategory.SYNTAX,
                rule="syntax-error",
            ))

        lines = code.split("\n")
        if any(line.startswith("    ") for line in lines):
            for line_number, line in enumerate(lines, start=1):
                if line.startswith("\t"):
                    issues.append(CodeIssue(
                        severity=Severity.ERROR,
                        message="Mixed tabs and spaces in indentation",
                        line=line_number,
                        column=0,
                        category=IssueCategory.SYNTAX,
                        rule="mixed-indentation",
                        suggestion="Use either tabs or spaces consistently for indentation",
                    ))

        issues.extend(scan_lines(code, SYNTAX_RULES))
        issues.extend(self._unused_imports(code))
        return issues

    def _unused_imports(self, code: str) -> List[CodeIssue]:
        issues = []
        for line_number, line in enumerate(code.split("\n"), start=1):
            found = _IMPORT_RE.match(line)
            if not found:
                continue
            name = found.group(1) or found.group(2)
            if f"{name}." not in code and f"{name}(" not in code:
                issues.append(CodeIssue(
                    severity=Severity.INFO,
                    message=f"Unused import: {name}",
                    line=line_number,
                    column=0,
                    category=IssueCategory.STYLE,
                    rule="unused-import",
                    suggestion="Remove unused imports to keep code clean",
                    fixable=True,
                ))
        return issues

    def analyze_performance(self, code: str) -> List[CodeIssue]:
        issues = scan_lines(code, PERFORMANCE_RULES)
        lines = code.split("\n")
        for index, line in enumerate(lines):
            stripped = line.strip()
            if not (stripped.startswith("for ") or stripped.startswith("while ")):
                continue
            body = lines[index + 1:index + 10]
            if any("+= " in b and ('"' in b or "'" in b) for b in body):
                issues.append(CodeIssue(
                    severity=Severity.WARNING,
                    message="String concatenation in loop can be inefficient",
                    line=index + 1,
                    column=0,
                    category=IssueCategory.PERFORMANCE,
                    rule="string-concat-loop",
                    suggestion="Use list.append() and ''.join() for better performance",
                ))
        return issues

    def analyze_security(self, code: str) -> List[CodeIssue]:
        return scan_lines(code, SECURITY_RULES)

    def analyze_style(self, code: str) -> List[CodeIssue]:
        return scan_lines(code, STYLE_RULES)

    def calculate_metrics(self, code: str) -> CodeMetrics:
        metrics = self.fallback.calculate_metrics(code)
        # Comprehensions hide a loop and a branch each
        comprehensions = len(_LIST_COMPREHENSION_RE.findall(code))
        metrics.cyclomatic_complexity = round(metrics.cyclomatic_complexity + comprehensions * 0.5)
        return metrics

    def generate_suggestions(self, issues: List[CodeIssue], metrics: CodeMetrics) -> List[str]:
        suggestions = self.fallback.generate_suggestions(issues, metrics)
        if sum(1 for i in issues if "PEP 8" in i.message) > 5:
            suggestions.append("Use black or autopep8 to automatically format code according to PEP 8")
        if any(i.category == IssueCategory.SECURITY for i in issues):
            suggestions.append("Consider using bandit for security analysis of Python code")
        return suggestions
