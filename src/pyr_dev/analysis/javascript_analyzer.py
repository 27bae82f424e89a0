"""JavaScript / TypeScript heuristics."""

import re
from typing import List, Optional

from .base import GenericAnalyzer, LineRule, scan_lines
from .models import CodeIssue, CodeMetrics, IssueCategory, Severity

_CALLBACK_RE = re.compile(r"\.then\(|\.catch\(|callback\(")
_DOM_QUERY = ("document.getElementById", "document.querySelector")
_NO_SEMICOLON_KEYWORDS = ("if", "for", "while", "function", "class")


def _missing_semicolon(line: str) -> bool:
    stripped = line.strip()
    if not stripped or stripped.endswith((";", "{", "}")) or stripped.startswith(("//", "/*", "*")):
        return False
    return not any(keyword in stripped for keyword in _NO_SEMICOLON_KEYWORDS)


def _loose_equality(line: str) -> bool:
    return "==" in line and "===" not in line and "!==" not in line


def _capitalized_function(line: str) -> bool:
    found = re.search(r"function\s+([a-zA-Z_][a-zA-Z0-9_]*)", line)
    return bool(found) and found.group(1)[0].isupper() and "constructor" not in line


def _unspaced_assignment(line: str) -> bool:
    if "=" not in line or "==" in line or "=>" in line:
        return False
    return not re.search(r"\s=\s", line)


SYNTAX_RULES = (
    LineRule(_missing_semicolon, Severity.WARNING, "Missing semicolon", IssueCategory.SYNTAX,
             "missing-semicolon", "Add semicolon at end of statement", fixable=True),
    LineRule(re.compile(r"\bvar\s"), Severity.WARNING, "Use 'let' or 'const' instead of 'var'",
             IssueCategory.STYLE, "no-var", "Replace 'var' with 'let' or 'const'", fixable=True),
    LineRule(_loose_equality, Severity.WARNING,
             "Use strict equality (===) instead of loose equality (==)", IssueCategory.LOGIC,
             "strict-equality", "Replace '==' with '==='", fixable=True),
    LineRule(re.compile(r"console\.log"), Severity.INFO, "Console.log statement found",
             IssueCategory.STYLE, "no-console", "Remove console.log before production"),
)

PERFORMANCE_RULES = (
    LineRule(lambda line: ".forEach(" in line and "push(" in line, Severity.WARNING,
             "Consider using map() instead of forEach() with push()", IssueCategory.PERFORMANCE,
             "prefer-map", "Use array.map() for transformations"),
    LineRule(lambda line: "JSON.parse" in line and "localStorage.getItem" in line, Severity.INFO,
             "Consider using async operations for large data parsing", IssueCategory.PERFORMANCE,
             "sync-json-parse"),
)

SECURITY_RULES = (
    LineRule(lambda line: ".innerHTML" in line and "=" in line, Severity.WARNING,
             "Using innerHTML can lead to XSS vulnerabilities", IssueCategory.SECURITY,
             "no-inner-html", "Use textContent or a sanitizer instead"),
    LineRule(re.compile(r"\beval\("), Severity.ERROR, "eval() usage is dangerous and should be avoided",
             IssueCategory.SECURITY, "no-eval", "Use JSON.parse() or other safe alternatives"),
    LineRule(re.compile(r"document\.write"), Severity.WARNING,
             "document.write() can be dangerous and is deprecated", IssueCategory.SECURITY,
             "no-document-write", "Use DOM manipulation methods instead"),
)

STYLE_RULES = (
    LineRule(_capitalized_function, Severity.WARNING, "Function names should start with lowercase letter",
             IssueCategory.STYLE, "function-naming", "Use camelCase for function names"),
    LineRule(_unspaced_assignment, Severity.INFO, "Add spaces around assignment operators",
             IssueCategory.STYLE, "operator-spacing", fixable=True),
)

TYPESCRIPT_RULES = (
    LineRule(re.compile(r":\s*any\b"), Severity.WARNING, "Avoid using 'any' type - use specific types instead",
             IssueCategory.MAINTAINABILITY, "no-any", "Define specific types or interfaces"),
)


class JavaScriptAnalyzer:
    """Heuristic analyzer for JavaScript; ``typescript=True`` adds type checks."""

    def __init__(self, typescript: bool = False, fallback: Optional[GenericAnalyzer] = None):
        self.typescript = typescript
        self.fallback = fallback or GenericAnalyzer()

    def analyze_syntax(self, code: str) -> List[CodeIssue]:
        issues = scan_lines(code, SYNTAX_RULES)
        if self.typescript:
            issues.extend(scan_lines(code, TYPESCRIPT_RULES))
        return issues

    def analyze_performance(self, code: str) -> List[CodeIssue]:
        issues = scan_lines(code, PERFORMANCE_RULES)
        lines = code.split("\n")
        for index, line in enumerate(lines):
            if not any(query in line for query in _DOM_QUERY):
                continue
            if any(query in following for following in lines[index + 1:index + 5] for query in _DOM_QUERY):
                issues.append(CodeIssue(
                    severity=Severity.WARNING,
                    message="Repeated DOM queries detected",
                    line=index + 1,
                    column=0,
                    category=IssueCategory.PERFORMANCE,
                    rule="cache-dom-queries",
                    suggestion="Cache DOM elements in variables",
                ))
        return issues

    def analyze_security(self, code: str) -> List[CodeIssue]:
        return scan_lines(code, SECURITY_RULES)

    def analyze_style(self, code: str) -> List[CodeIssue]:
        return scan_lines(code, STYLE_RULES)

    def calculate_metrics(self, code: str) -> CodeMetrics:
        metrics = self.fallback.calculate_metrics(code)
        callbacks = len(_CALLBACK_RE.findall(code))
        metrics.cyclomatic_complexity = round(metrics.cyclomatic_complexity + callbacks * 0.5)
        return metrics

    def generate_suggestions(self, issues: List[CodeIssue], metrics: CodeMetrics) -> List[str]:
        suggestions = self.fallback.generate_suggestions(issues, metrics)
        by_category = {category: 0 for category in IssueCategory}
        for issue in issues:
            by_category[issue.category] += 1

        if by_category[IssueCategory.SECURITY]:
            suggestions.append("Consider using a security linter like ESLint with security plugins")
        if by_category[IssueCategory.PERFORMANCE] > 3:
            suggestions.append("Consider using performance profiling tools to identify bottlenecks")
        if by_category[IssueCategory.STYLE] > 10:
            suggestions.append("Use Prettier and ESLint to automatically format and fix style issues")
        if self.typescript and any(i.rule == "no-any" for i in issues):
            suggestions.append("Enable strict mode in TypeScript configuration to catch more type issues")
        return suggestions
