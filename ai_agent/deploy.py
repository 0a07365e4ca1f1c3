from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List

from .errors import ActionValidationError, UnsupportedOperation
from .models import DeployAction, DeployStep
from .session import Session
from .shell_runner import ShellRunner

logger = logging.getLogger(__name__)

_STEP_LABELS = {
    "build": "Building for deployment...",
    "config": "Configuring deployment...",
    "upload": "Uploading to {platform}...",
    "invoke": "Invoking deployment command...",
}


class Deployer:
    def __init__(self, session: Session, shell: ShellRunner):
        self.session = session
        self.shell = shell

    def execute(self, action: DeployAction) -> Dict[str, Any]:
        logger.info("Deploying to %s...", action.platform)
        outputs: List[str] = []
        try:
            for step in action.steps:
                output = self.run_step(step, action.platform)
                if output:
                    outputs.append(output)
        except Exception as exc:
            logger.error("Deployment error: %s", exc)
            raise
        logger.info("Deployment to %s complete!", action.platform)
        return {"success": True, "message": f"Deployment to {action.platform} complete", "output": "\n".join(outputs)}

    def run_step(self, step: DeployStep, platform: str) -> str:
        label = _STEP_LABELS.get(step.type)
        if label is None:
            if self.session.strict_actions:
                raise UnsupportedOperation(f"Unsupported deployment step: {step.type}")
            logger.warning("Unsupported deployment step: %s", step.type)
            return ""
        logger.info(label.format(platform=platform))

        if step.type == "config" and step.path and step.content is not None:
            target = Path(self.session.resolve_path(step.path))
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(step.content, encoding="utf-8")
            return ""
        if not step.command:
            raise ActionValidationError(f"{step.type} step needs 'command'")
        return self.shell.check(step.command)
