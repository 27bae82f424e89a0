"""Java heuristics."""

import re
from typing import List, Optional

from .base import GenericAnalyzer, LineRule, scan_lines
from .models import CodeIssue, CodeMetrics, IssueCategory, Severity

_NO_SEMICOLON_KEYWORDS = ("if", "for", "while", "class", "public", "private", "protected")
_BOXED_TYPES = ("Integer", "Double", "Boolean")


def _missing_semicolon(line: str) -> bool:
    stripped = line.strip()
    if not stripped or stripped.endswith((";", "{", "}")) or stripped.startswith(("//", "/*", "*", "@")):
        return False
    return not any(keyword in stripped for keyword in _NO_SEMICOLON_KEYWORDS)


def _name_violates(pattern: str, convention: str, exempt: tuple = ()):
    search = re.compile(pattern)

    def check(line: str) -> bool:
        found = search.search(line)
        if not found:
            return False
        name = found.group(found.lastindex)
        return name not in exempt and not re.fullmatch(convention, name)

    return check


SYNTAX_RULES = (
    LineRule(_missing_semicolon, Severity.ERROR, "Missing semicolon", IssueCategory.SYNTAX,
             "missing-semicolon", "Add semicolon at end of statement", fixable=True),
    LineRule(re.compile(r"\b(List|Map|Set|ArrayList|HashMap|HashSet)\s+\w+\s*="), Severity.WARNING,
             "Use generic types instead of raw types", IssueCategory.LOGIC, "raw-types",
             "Specify generic type parameters"),
    LineRule(re.compile(r"System\.out\.println"), Severity.INFO,
             "System.out.println found - consider using logging framework", IssueCategory.STYLE,
             "no-system-out", "Use a logging framework like SLF4J or java.util.logging"),
)

PERFORMANCE_RULES = (
    LineRule(lambda line: "new ArrayList()" in line and "for" in line, Severity.INFO,
             "Consider specifying initial capacity for ArrayList", IssueCategory.PERFORMANCE,
             "arraylist-capacity"),
)

SECURITY_RULES = (
    LineRule(lambda line: "Statement" in line and "executeQuery" in line, Severity.WARNING,
             "Potential SQL injection vulnerability", IssueCategory.SECURITY, "sql-injection",
             "Use PreparedStatement with parameterized queries"),
    LineRule(lambda line: "password" in line.lower() and "=" in line and '"' in line, Severity.WARNING,
             "Potential hardcoded password", IssueCategory.SECURITY, "hardcoded-password",
             "Use environment variables or secure configuration"),
    LineRule(re.compile(r"ObjectInputStream|readObject"), Severity.WARNING,
             "Deserialization can be unsafe", IssueCategory.SECURITY, "unsafe-deserialization",
             "Validate input before deserialization"),
)

STYLE_RULES = (
    LineRule(_name_violates(r"class\s+([a-zA-Z_][a-zA-Z0-9_]*)", r"[A-Z][a-zA-Z0-9]*"), Severity.WARNING,
             "Class name should be in PascalCase", IssueCategory.STYLE, "class-naming"),
    LineRule(_name_violates(r"(public|private|protected).*\s+(\w+)\s*\(", r"[a-z][a-zA-Z0-9]*", ("main",)),
             Severity.WARNING, "Method name should be in camelCase", IssueCategory.STYLE, "method-naming"),
    LineRule(_name_violates(r"static\s+final\s+\w+\s+(\w+)", r"[A-Z][A-Z0-9_]*"), Severity.WARNING,
             "Constant name should be in UPPER_SNAKE_CASE", IssueCategory.STYLE, "constant-naming"),
)


class JavaAnalyzer:
    """Heuristic analyzer for Java source."""

    def __init__(self, fallback: Optional[GenericAnalyzer] = None):
        self.fallback = fallback or GenericAnalyzer()

    def analyze_syntax(self, code: str) -> List[CodeIssue]:
        return scan_lines(code, SYNTAX_RULES)

    def analyze_performance(self, code: str) -> List[CodeIssue]:
        issues = scan_lines(code, PERFORMANCE_RULES)
        lines = code.split("\n")
        for index, line in enumerate(lines):
            stripped = line.strip()
            is_loop = "for " in stripped or "while " in stripped
            if is_loop and any("+= " in b or "+ " in b for b in lines[index + 1:index + 10]):
                issues.append(CodeIssue(
                    severity=Severity.WARNING,
                    message="String concatenation in loop - use StringBuilder",
                    line=index + 1,
                    column=0,
                    category=IssueCategory.PERFORMANCE,
                    rule="string-concat-loop",
                    suggestion="Use StringBuilder for string concatenation in loops",
                ))
            if any(boxed in line for boxed in _BOXED_TYPES):
                nearby = lines[max(0, index - 2):index + 3]
                if any("for " in n or "while " in n for n in nearby):
                    issues.append(CodeIssue(
                        severity=Severity.WARNING,
                        message="Potential autoboxing in loop - use primitives",
                        line=index + 1,
                        column=0,
                        category=IssueCategory.PERFORMANCE,
                        rule="autoboxing",
                        suggestion="Use primitive types (int, double, boolean) in loops",
                    ))
        return issues

    def analyze_security(self, code: str) -> List[CodeIssue]:
        return scan_lines(code, SECURITY_RULES)

    def analyze_style(self, code: str) -> List[CodeIssue]:
        return scan_lines(code, STYLE_RULES)

    def calculate_metrics(self, code: str) -> CodeMetrics:
        return self.fallback.calculate_metrics(code)

    def generate_suggestions(self, issues: List[CodeIssue], metrics: CodeMetrics) -> List[str]:
        suggestions = self.fallback.generate_suggestions(issues, metrics)
        if any(i.category == IssueCategory.PERFORMANCE for i in issues):
            suggestions.append("Consider using Java profiling tools like JProfiler or VisualVM")
        if any(i.category == IssueCategory.SECURITY for i in issues):
            suggestions.append("Use static analysis tools like SpotBugs or SonarQube for security analysis")
        return suggestions
