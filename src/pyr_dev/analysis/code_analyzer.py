"""Static analysis orchestration for multiple languages."""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from .base import GenericAnalyzer, LanguageAnalyzer
from .java_analyzer import JavaAnalyzer
from .javascript_analyzer import JavaScriptAnalyzer
from .models import AnalysisResult, CodeIssue, CodeMetrics, Severity
from .python_analyzer import PythonAnalyzer

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    ".py": "python",
    ".pyi": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".java": "java",
    ".go": "go",
    ".rs": "rust",
    ".cs": "csharp",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".rb": "ruby",
}


class LanguageDetector:
    """Detect a language tag from a file path."""

    @staticmethod
    def detect_language(file_path: Path) -> Optional[str]:
        return _EXTENSIONS.get(Path(file_path).suffix.lower())


def calculate_overall_score(issues: List[CodeIssue], metrics: CodeMetrics) -> int:
    """100 minus per-issue and per-metric penalties, clamped to 0..100."""
    score = 100
    for issue in issues:
        if issue.severity == Severity.ERROR:
            score -= 10
        elif issue.severity == Severity.WARNING:
            score -= 3
        elif issue.severity == Severity.INFO:
            score -= 1

    if metrics.cyclomatic_complexity > 15:
        score -= 10
    if metrics.maintainability_index < 40:
        score -= 15
    if metrics.duplicated_lines > 30:
        score -= 10

    return max(0, min(100, score))


class UniversalCodeAnalyzer:
    """Dispatch to a per-language analyzer, falling back to generic heuristics."""

    def __init__(self, analyzers: Optional[Dict[str, LanguageAnalyzer]] = None):
        self.fallback = GenericAnalyzer()
        self.analyzers: Dict[str, LanguageAnalyzer] = analyzers if analyzers is not None else {
            "python": PythonAnalyzer(self.fallback),
            "javascript": JavaScriptAnalyzer(fallback=self.fallback),
            "typescript": JavaScriptAnalyzer(typescript=True, fallback=self.fallback),
            "java": JavaAnalyzer(self.fallback),
        }

    def get_supported_languages(self) -> List[str]:
        return list(self.analyzers)

    def get_analyzer(self, language: Optional[str]) -> LanguageAnalyzer:
        analyzer = self.analyzers.get((language or "").lower())
        if analyzer is None:
            logger.debug(f"No dedicated analyzer for '{language}', using generic heuristics")
            return self.fallback
        return analyzer

    async def analyze_code(
        self,
        code: str,
        language: str,
        file_path: Optional[str] = None,
    ) -> AnalysisResult:
        """Run every analysis pass and aggregate the result.

        Args:
            code: Source text to analyze
            language: Language tag (case-insensitive)
            file_path: Optional path, used only for logging

        Returns:
            AnalysisResult with issues sorted by severity then line
        """
        analyzer = self.get_analyzer(language)

        issues: List[CodeIssue] = [
            *analyzer.analyze_syntax(code),
            *analyzer.analyze_performance(code),
            *analyzer.analyze_security(code),
            *analyzer.analyze_style(code),
        ]
        issues.sort(key=lambda issue: (issue.severity.rank, issue.line))
        metrics = analyzer.calculate_metrics(code)

        result = AnalysisResult(
            issues=issues,
            metrics=metrics,
            suggestions=self._generate_suggestions(analyzer, issues, metrics),
            overall_score=calculate_overall_score(issues, metrics),
        )
        logger.info(
            f"Analyzed {file_path or 'snippet'} ({language}): {result.summary}"
        )
        return result

    async def analyze_syntax(self, code: str, language: str) -> List[CodeIssue]:
        return self.get_analyzer(language).analyze_syntax(code)

    async def analyze_performance(self, code: str, language: str) -> List[CodeIssue]:
        return self.get_analyzer(language).analyze_performance(code)

    async def analyze_security(self, code: str, language: str) -> List[CodeIssue]:
        return self.get_analyzer(language).analyze_security(code)

    async def analyze_style(self, code: str, language: str) -> List[CodeIssue]:
        return self.get_analyzer(language).analyze_style(code)

    async def calculate_metrics(self, code: str, language: str) -> CodeMetrics:
        return self.get_analyzer(language).calculate_metrics(code)

    def _generate_suggestions(
        self,
        analyzer: LanguageAnalyzer,
        issues: List[CodeIssue],
        metrics: CodeMetrics,
    ) -> List[str]:
        suggestions: List[str] = []

        errors = sum(1 for i in issues if i.severity == Severity.ERROR)
        warnings = sum(1 for i in issues if i.severity == Severity.WARNING)
        if errors:
            suggestions.append(
                f"Fix {errors} syntax error{'s' if errors > 1 else ''} to improve code stability"
            )
        if warnings > 5:
            suggestions.append(f"Address {warnings} warnings to improve code quality")

        if metrics.cyclomatic_complexity > 10:
            suggestions.append("Consider breaking down complex functions to improve maintainability")
        if metrics.maintainability_index < 50:
            suggestions.append("Refactor code to improve maintainability index")
        if metrics.duplicated_lines > 20:
            suggestions.append("Extract common code into reusable functions to reduce duplication")

        suggestions.extend(analyzer.generate_suggestions(issues, metrics))
        return suggestions


def format_findings_report(result: AnalysisResult, max_findings: int = 20) -> str:
    """Markdown report of an analysis, for LLM prompts and the CLI."""
    lines = [
        "## Static Analysis Report",
        "",
        f"**Summary:** {result.summary}",
        f"**Complexity:** {result.metrics.cyclomatic_complexity}  "
        f"**Maintainability:** {result.metrics.maintainability_index}",
        "",
    ]

    errors = [i for i in result.issues if i.severity == Severity.ERROR]
    warnings = [i for i in result.issues if i.severity == Severity.WARNING]
    minor = [i for i in result.issues if i.severity in (Severity.INFO, Severity.HINT)]

    if errors:
        lines.append("### Errors")
        lines.append("")
        for issue in errors[:max_findings]:
            lines.append(f"**Line {issue.line}** - {issue.rule or issue.category.value}")
            lines.append(issue.message)
            if issue.suggestion:
                lines.append(f"_{issue.suggestion}_")
            lines.append("")

    if warnings:
        lines.append("### Warnings")
        lines.append("")
        for issue in warnings[:max_findings]:
            lines.append(f"- Line {issue.line}: {issue.message}")
        lines.append("")

    if minor:
        lines.append(f"### Minor ({len(minor)})")
        lines.append("")
        for issue in minor[:5]:
            lines.append(f"- Line {issue.line}: {issue.message}")
        if len(minor) > 5:
            lines.append(f"- ... and {len(minor) - 5} more")
        lines.append("")

    if result.suggestions:
        lines.append("### Suggestions")
        lines.extend(f"- {s}" for s in result.suggestions)

    return "\n".join(lines)

