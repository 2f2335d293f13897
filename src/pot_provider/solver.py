"""Contract with the external challenge solver."""

import importlib
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from pot_provider.dispatcher import Dispatcher
from pot_provider.fetcher import Transport

# Request key the challenge endpoint has accepted for years
DEFAULT_REQUEST_KEY = "O43z0dpjhgX20SCx4KAo"


@dataclass
class ExecutionContext:
    """Scratch environment for a single solver run.

    Anything the solver would otherwise install as process globals lives in
    `globals` and is discarded when the run ends.
    """
    identifier: str
    dispatcher: Dispatcher | None = None
    globals: dict[str, Any] = field(default_factory=dict)
    closed: bool = False

    def close(self) -> None:
        self.globals.clear()
        self.dispatcher = None
        self.closed = True


@dataclass
class ChallengeRequest:
    """Everything the solver needs to fetch a challenge and mint a token."""
    identifier: str
    request_key: str
    fetch: Transport
    context: ExecutionContext


@runtime_checkable
class ChallengeSolver(Protocol):
    """Opaque challenge engine.

    Both calls talk to remote endpoints only through `request.fetch`.
    """

    async def create_challenge(self, request: ChallengeRequest) -> Any:
        """Fetch and prepare a challenge. May return None if none was issued."""
        ...

    async def generate_token(self, challenge: Any, request: ChallengeRequest) -> str | None:
        """Derive a token from a prepared challenge."""
        ...


def load_solver(path: str) -> ChallengeSolver:
    """Import a solver from a "module:attribute" path.

    A class or factory function is called with no arguments.

    Raises:
        ValueError: If the path is malformed or the object is not a solver.
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Solver path must look like 'module:attribute', got {path!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ValueError(f"Cannot import solver module {module_name!r}: {e}") from e

    target = getattr(module, attr, None)
    if target is None:
        raise ValueError(f"Module {module_name!r} has no attribute {attr!r}")

    if isinstance(target, type):
        solver = target()
    elif isinstance(target, ChallengeSolver):
        solver = target
    elif callable(target):
        solver = target()
    else:
        solver = target

    if not isinstance(solver, ChallengeSolver):
        raise ValueError(f"{path!r} does not provide create_challenge/generate_token")
    return solver
