from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from openai import OpenAI, OpenAIError

from .errors import ModelRequestError

API_KEY_ENV_VAR = "AI_AGENT_API_KEY"

PLAN_SCHEMA = """{
    "type": "project|file|system|server|database|git|npm|python|deploy|composite",
    "actions": [
        {
            "type": "project-setup",
            "projectType": "node|python|react|angular|vue|next|nest|django|flask|etc",
            "template": "basic|auth|fullstack|etc",
            "name": "project name",
            "path": "project path",
            "steps": [
                {
                    "type": "mkdir|write|exec|install|config|start|stop|git|database",
                    "details": {}
                }
            ]
        },
        {
            "type": "file-operation",
            "action": "read|write|append|delete|rename|mkdir|rmdir|list|watch|unwatch",
            "path": "target path",
            "content": "file content if applicable",
            "newPath": "for rename operations",
            "options": {"recursive": true, "force": true}
        },
        {
            "type": "package-operation",
            "manager": "npm|pip",
            "action": "install|uninstall|update|init|run",
            "packages": ["package1", "package2"],
            "options": "additional flags",
            "directory": "working directory"
        },
        {
            "type": "process-operation",
            "action": "start|stop|list",
            "command": "command to run",
            "options": {
                "name": "process name",
                "waitForExit": false,
                "cwd": "working directory",
                "logFile": "path/to/log.txt"
            }
        },
        {
            "type": "database-operation",
            "dbType": "mongodb|mysql|postgres|sqlite",
            "action": "create-collection|insert|query|drop-collection",
            "connectionString": "database connection string",
            "database": "database name",
            "collection": "collection/table name",
            "data": [],
            "query": {}
        },
        {
            "type": "git-operation",
            "action": "init|clone|add|commit|push|checkout",
            "repository": "repo URL for clone",
            "branch": "branch name",
            "message": "commit message"
        },
        {
            "type": "deploy-operation",
            "platform": "firebase|heroku|netlify|vercel|aws|etc",
            "steps": [
                {"type": "build|config|upload|invoke", "command": "command to execute", "path": "target path"}
            ]
        }
    ],
    "context": {
        "description": "human-readable description of what this plan does",
        "needsMonitoring": false,
        "estimated_time": "time estimate in minutes"
    }
}"""


def build_prompt(command: str, language: str) -> str:
    return (
        f'Parse this command in {language}: "{command}"\n\n'
        "Respond with a detailed JSON execution plan. Include only the actions needed, "
        "using these shapes:\n"
        f"{PLAN_SCHEMA}\n\n"
        "IMPORTANT: Return ONLY the JSON object with no additional text before or after it, "
        "and no comments inside it."
    )


class LLMInterface:
    """Abstract interface for a plan-producing model client."""

    def generate_plan(self, *, command: str, language: str = "hindi") -> str:  # pragma: no cover - interface only
        raise NotImplementedError


@dataclass
class OpenAIChatLLM(LLMInterface):
    """Chat-completions client for any OpenAI-compatible endpoint.

    Defaults to Gemini's compatibility endpoint. The key comes from the
    constructor or the AI_AGENT_API_KEY environment variable.
    """

    model: str = "gemini-1.5-pro"
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    temperature: float = 0.2
    max_tokens: Optional[int] = None
    timeout: Optional[float] = None
    # 0 disables the SDK retries
    max_retries: int = 0

    def _resolve_api_key(self) -> str:
        key = self.api_key or os.environ.get(API_KEY_ENV_VAR)
        if not key:
            raise ModelRequestError(
                f"No API key configured; set one with 'settings' or the {API_KEY_ENV_VAR} env var"
            )
        return key

    def generate_plan(self, *, command: str, language: str = "hindi") -> str:
        kwargs = {"api_key": self._resolve_api_key(), "max_retries": self.max_retries}
        if self.base_url:
            kwargs["base_url"] = self.base_url
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        client = OpenAI(**kwargs)

        request = {
            "model": self.model,
            "messages": [
                {
                    "role": "system",
                    "content": "You turn developer instructions into JSON execution plans for a local shell agent.",
                },
                {"role": "user", "content": build_prompt(command, language)},
            ],
            "temperature": self.temperature,
        }
        if self.max_tokens:
            request["max_tokens"] = self.max_tokens
        try:
            response = client.chat.completions.create(**request)
        except OpenAIError as exc:
            raise ModelRequestError(f"Model request failed: {exc}") from exc
        if not response.choices:
            raise ModelRequestError("Model returned no choices")
        content = response.choices[0].message.content or ""
        return content.strip()
