"""pyr-dev: LLM code assistant with a task-chain execution engine."""

__version__ = "0.1.0"
