"""Hook models."""

from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class HookEvent(str, Enum):
    """Lifecycle transitions hooks can attach to."""
    CREATE = "create"
    MODIFY = "modify"
    COMPLETE = "complete"
    DELETE = "delete"


MUTATING_EVENTS = frozenset({HookEvent.CREATE, HookEvent.MODIFY})


class HookInvocation(BaseModel):
    """One hook execution: what goes to stdin and into the environment."""
    model_config = ConfigDict(frozen=True)

    event: HookEvent
    task_id: str
    stdin_payload: str = Field(..., description="JSON document written to the hook's stdin")
    env: dict[str, str] = Field(default_factory=dict)


class HookResult(BaseModel):
    """Captured output of a hook that exited with status 0."""
    hook_path: str
    stdout: str = ""
    stderr: str = ""

    @property
    def has_replacement(self) -> bool:
        return self.stdout.strip() != ""
