"""Super AI Agent package.

Turns free-text developer instructions into structured execution plans via
an LLM and runs them step by step:
- File operations and directory watching
- npm / pip package management
- Long-running process management
- MongoDB operations
- Git, project scaffolding and deployment commands
"""

from .config import AppConfig
from .dispatcher import PlanDispatcher
from .llm_client import LLMInterface, OpenAIChatLLM
from .plan_parser import parse_plan
from .registry import ResourceRegistry
from .session import Session
from .shell_runner import ShellRunner

__all__ = [
    "AppConfig",
    "PlanDispatcher",
    "LLMInterface",
    "OpenAIChatLLM",
    "parse_plan",
    "ResourceRegistry",
    "Session",
    "ShellRunner",
]

__version__ = "1.0.0"
