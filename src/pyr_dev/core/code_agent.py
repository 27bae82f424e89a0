"""Code assistant agent: LLM-backed analyze/fix/generate/explain capabilities."""

import json
import logging
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel

from . import prompts
from .agent import BaseAgent
from .capabilities import Capability
from .config import PyrDevConfig
from .errors import MissingContextError
from .task import Context, Task, TaskType, new_task_id
from ..analysis.code_analyzer import LanguageDetector, UniversalCodeAnalyzer
from ..analysis.models import AnalysisResult, CodeIssue
from ..llm.base import LLMMessage, LLMOptions, LLMProvider

logger = logging.getLogger(__name__)

# Keys of the analyze capability's result dict
ANALYSIS_KEY = "analysis"
STATIC_ANALYSIS_KEY = "static_analysis"


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, Enum):
        return value.value
    return str(value)


def render_previous_results(results: Sequence[Any]) -> str:
    """JSON rendering of earlier chain results for the chain prompt."""
    if not results:
        return "None"
    return json.dumps(list(results), default=_jsonable)


def latest_static_analysis(results: Sequence[Any]) -> Optional[AnalysisResult]:
    """Most recent analyze-capability result in a chain's results, if any."""
    for result in reversed(results):
        if isinstance(result, dict) and isinstance(result.get(STATIC_ANALYSIS_KEY), AnalysisResult):
            return result[STATIC_ANALYSIS_KEY]
    return None


class CodeAgent(BaseAgent):
    """Agent exposing code-assistant operations over an LLM provider and a static analyzer."""

    def __init__(
        self,
        provider: LLMProvider,
        code_analyzer: UniversalCodeAnalyzer,
        config: Optional[PyrDevConfig] = None,
    ):
        self.code_analyzer = code_analyzer
        super().__init__(provider, config)

    def _register_capabilities(self) -> None:
        register = self.capabilities.register
        register(TaskType.ANALYZE, Capability(
            "Code Analysis", "Analyze code for issues, bugs, and improvements", self._analyze,
        ))
        register(TaskType.FIX, Capability(
            "Code Fixing", "Fix identified issues in code", self._fix,
        ))
        register(TaskType.GENERATE, Capability(
            "Code Generation", "Generate code from natural language description", self._generate,
        ))
        register(TaskType.EXPLAIN, Capability(
            "Code Explanation", "Explain code functionality and structure", self._explain,
        ))
        register(TaskType.CHAIN, Capability(
            "Chain Task Execution", "Execute a sequence of related tasks", self._chain,
        ))
        register(TaskType.GENERAL, Capability(
            "General Request", "Free-form request answered with the accumulated chain context",
            self._general,
        ))

    # -- helpers ---------------------------------------------------------

    @staticmethod
    def _language(context: Context, default: str = "unknown") -> str:
        if context.language:
            return context.language
        if context.file_path:
            return LanguageDetector.detect_language(context.file_path) or default
        return default

    @staticmethod
    def _require_code(context: Context, purpose: str) -> str:
        if not context.code:
            raise MissingContextError(f"No code provided for {purpose}")
        return context.code

    async def _ask(
        self,
        template: str,
        system: str = prompts.SYSTEM_PROMPT,
        options: Optional[LLMOptions] = None,
        **variables: Any,
    ) -> str:
        """Single system + user exchange, outside the conversation window."""
        messages = [
            LLMMessage(role="system", content=system),
            LLMMessage(role="user", content=prompts.format_prompt(template, **variables)),
        ]
        return await self._complete(messages, options)

    # -- capabilities ----------------------------------------------------

    async def _analyze(self, context: Context, params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        code = self._require_code(context, "analysis")
        language = self._language(context)
        analysis = await self._ask(prompts.CODE_ANALYSIS, language=language, code=code)
        static_analysis = await self.code_analyzer.analyze_code(code, language, context.file_path)
        return {ANALYSIS_KEY: analysis, STATIC_ANALYSIS_KEY: static_analysis}

    async def _fix(self, context: Context, params: Optional[Dict[str, Any]]) -> str:
        code = self._require_code(context, "fixing")
        issues: List[str] = list((params or {}).get("issues") or [])
        if not issues:
            # Chain-driven: fix whatever the latest analysis step found
            previous = latest_static_analysis(context.previous_results)
            if previous is not None:
                issues = [issue.describe() for issue in previous.issues]
        return await self._ask(prompts.CODE_FIX, code=code, issues="\n".join(issues))

    async def _generate(self, context: Context, params: Optional[Dict[str, Any]]) -> str:
        description = (params or {}).get("description") or context.project_context or "Generate code"
        language = self._language(context, default="javascript")
        return await self._ask(prompts.CODE_GENERATION, language=language, description=description)

    async def _explain(self, context: Context, params: Optional[Dict[str, Any]]) -> str:
        code = self._require_code(context, "explanation")
        return await self._ask(prompts.CODE_EXPLANATION, language=self._language(context), code=code)

    async def _chain(self, context: Context, params: Optional[Dict[str, Any]]) -> str:
        params = params or {}
        current_task = params.get("current_task") or context.project_context or ""
        prompt = prompts.format_prompt(
            prompts.CHAIN_TASK,
            current_task=current_task,
            previous_context=render_previous_results(context.previous_results),
            request=context.code or "No specific request",
        )
        remaining = params.get("tasks")
        if remaining:
            prompt += "\n\nFull task list:\n" + "\n".join(f"- {t}" for t in remaining)

        messages = [
            LLMMessage(role="system", content=prompts.SYSTEM_PROMPT),
            *self._conversation,
            LLMMessage(role="user", content=prompt),
        ]
        return await self._complete(messages)

    async def _general(self, context: Context, params: Optional[Dict[str, Any]]) -> str:
        params = dict(params or {})
        params.setdefault("current_task", context.project_context or "General request")
        return await self._chain(context, params)

    # -- high-level operations -------------------------------------------

    def _new_task(self, task_type: TaskType, description: str, context: Context) -> Task:
        return Task(
            id=new_task_id(task_type.value),
            type=task_type,
            description=description,
            context=context,
        )

    @staticmethod
    def _context_turn(context: Optional[Context]) -> List[LLMMessage]:
        if context is None or not context.code:
            return []
        return [LLMMessage(
            role="user",
            content=f"Context - Language: {context.language}, Code: {context.code}",
        )]

    async def process_query(self, query: str, context: Optional[Context] = None) -> str:
        """Free-form chat turn; both sides are recorded in the conversation window."""
        self.add_to_conversation("user", query)
        messages = [
            LLMMessage(role="system", content=prompts.SYSTEM_PROMPT),
            *self._conversation,
            *self._context_turn(context),
        ]
        answer = await self._complete(messages)
        self.add_to_conversation("assistant", answer)
        return answer

    async def stream_response(self, query: str, context: Optional[Context] = None) -> AsyncIterator[str]:
        messages = [
            LLMMessage(role="system", content=prompts.SYSTEM_PROMPT),
            *self._conversation,
            LLMMessage(role="user", content=query),
            *self._context_turn(context),
        ]
        async for chunk in self.provider.stream(messages, self.llm_options):
            yield chunk

    async def analyze_and_fix(self, code: str, language: str) -> AnalysisResult:
        """Run the analyze capability and keep only its static analysis."""
        task = self._new_task(TaskType.ANALYZE, "Analyze code for issues", Context(code=code, language=language))
        result = await self.execute_task(task)
        return result[STATIC_ANALYSIS_KEY]

    async def apply_fixes(self, code: str, issues: Sequence[CodeIssue]) -> str:
        task = self._new_task(TaskType.FIX, "Fix code issues", Context(code=code))
        return await self.execute_task(task, {"issues": [issue.describe() for issue in issues]})

    async def explain_code(self, code: str, language: str) -> str:
        task = self._new_task(TaskType.EXPLAIN, "Explain code", Context(code=code, language=language))
        return await self.execute_task(task)

    async def generate_code(self, description: str, language: str) -> str:
        task = self._new_task(TaskType.GENERATE, "Generate code", Context(language=language))
        return await self.execute_task(task, {"description": description})

    async def execute_chained_tasks(
        self,
        task_descriptions: Sequence[str],
        initial_context: Optional[Context] = None,
    ) -> List[Any]:
        """Run descriptions as ``chain`` tasks without a tracked chain entity."""
        base = initial_context or Context()
        stamp = new_task_id("chain")
        tasks = [
            Task(id=f"{stamp}-{index}", type=TaskType.CHAIN, description=description,
                 context=base.model_copy(deep=True))
            for index, description in enumerate(task_descriptions)
        ]
        parameters = [
            {"tasks": list(task_descriptions), "current_task": description}
            for description in task_descriptions
        ]
        return await self.execute_chain_tasks(tasks, parameters)

    async def generate_inline_completion(
        self,
        code: str,
        language: str,
        current_line: str,
        position: Tuple[int, int],
        next_line: str = "",
    ) -> str:
        """Single-shot completion at a zero-based (line, character) position."""
        line, character = position
        completion = await self._ask(
            prompts.INLINE_COMPLETION,
            system=prompts.INLINE_COMPLETION_SYSTEM,
            language=language,
            code=code,
            current_line=current_line,
            next_line=next_line,
            position=f"Line {line + 1}, Column {character + 1}",
        )
        return completion.strip()

    async def explain_code_element(self, element: str, context: str, language: str, line: str) -> str:
        return await self._ask(
            prompts.CODE_ELEMENT_EXPLANATION,
            element=element, context=context, language=language, line=line,
        )

    async def analyze_code(self, code: str, language: str) -> AnalysisResult:
        """Static analysis only; no LLM call."""
        return await self.code_analyzer.analyze_code(code, language)

    async def generate_quick_fix(self, code: str, issue: str, language: str) -> str:
        return await self._ask(prompts.QUICK_FIX, code=code, issue=issue, language=language)

    async def refactor_code(self, code: str, language: str) -> str:
        return await self._ask(prompts.REFACTOR, code=code, language=language)

    async def optimize_code(self, code: str, language: str) -> str:
        return await self._ask(prompts.OPTIMIZE, code=code, language=language)

    async def add_comments(self, code: str, language: str) -> str:
        return await self._ask(prompts.ADD_COMMENTS, code=code, language=language)
