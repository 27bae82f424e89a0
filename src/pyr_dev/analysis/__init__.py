"""Heuristic code analysis for multiple languages."""

from .base import GenericAnalyzer, LanguageAnalyzer
from .code_analyzer import LanguageDetector, UniversalCodeAnalyzer, format_findings_report
from .java_analyzer import JavaAnalyzer
from .javascript_analyzer import JavaScriptAnalyzer
from .models import AnalysisResult, CodeIssue, CodeMetrics, IssueCategory, Severity
from .python_analyzer import PythonAnalyzer

__all__ = [
    "AnalysisResult",
    "CodeIssue",
    "CodeMetrics",
    "IssueCategory",
    "Severity",
    "LanguageAnalyzer",
    "GenericAnalyzer",
    "PythonAnalyzer",
    "JavaScriptAnalyzer",
    "JavaAnalyzer",
    "LanguageDetector",
    "UniversalCodeAnalyzer",
    "format_findings_report",
]
