"""Sequential request pipeline.

Both trust line endpoints run the same shape of pipeline:
validate -> ensure connected -> execute. Each step receives the previous
step's result (the first step receives nothing). An exception stops the
pipeline and propagates to the caller. A step can also end the request itself
by returning a Halt carrying the response; later steps are then skipped.
"""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

logger = logging.getLogger(__name__)

Step = Callable[..., Any]


@dataclass(frozen=True)
class PipelineOutcome:
    """Status code and JSON body for the HTTP layer to render."""

    status_code: int
    body: dict = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return 200 <= self.status_code < 300

    @classmethod
    def failure(cls, status_code: int, message: str) -> "PipelineOutcome":
        return cls(status_code=status_code, body={"success": False, "message": message})


@dataclass(frozen=True)
class Halt:
    """Returned by a step that has produced the response on its own."""

    outcome: PipelineOutcome


class PipelineRunner:
    """Run steps in order, feeding each result into the next step."""

    def __init__(self, name: str, steps: Sequence[Step]):
        """Initialize the runner.

        Args:
            name: Pipeline name for logging
            steps: Callables run in order; may be sync or async
        """
        self.name = name
        self.steps = list(steps)

    async def run(self, on_complete: Optional[Callable[[Any], Any]] = None) -> Any:
        """Run the pipeline.

        Args:
            on_complete: Called with the final result when every step succeeds

        Returns:
            on_complete's return value, the final result if no callback was
            given, or the Halt returned by a step that ended the flow

        Raises:
            Whatever the first failing step raised
        """
        result: Any = None

        for index, step in enumerate(self.steps):
            step_name = getattr(step, "__name__", repr(step))

            try:
                result = step() if index == 0 else step(result)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                logger.info(f"Pipeline {self.name} stopped at {step_name}: {e}")
                raise

            if isinstance(result, Halt):
                logger.debug(
                    f"Pipeline {self.name} halted at {step_name} "
                    f"with status {result.outcome.status_code}"
                )
                return result

        if on_complete is not None:
            return on_complete(result)
        return result
