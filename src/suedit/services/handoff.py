"""Hand-off of the staging copy to the operator.

A continuation channel emits the staging path and blocks until the
operator signals that editing is done. There is no timeout.
"""

import shlex
from abc import ABC, abstractmethod
from pathlib import Path

from suedit.core.exceptions import EditAbortedError, ExecutionError
from suedit.core.executor import CommandExecutor
from suedit.core.output import Console, console as default_console


DEFAULT_PROMPT = "Edit the file above, then press Enter to continue..."


class ContinuationChannel(ABC):
    """Waits for the operator to finish editing a staging copy."""

    @abstractmethod
    def hand_off(self, staging_path: Path, target: Path) -> None:
        """Expose staging_path and return once editing is complete.

        Raises:
            EditAbortedError: If the operator gives up without confirming
        """
        pass


class PromptChannel(ContinuationChannel):
    """Prints the staging path and waits for Enter on stdin."""

    def __init__(self, console: Console = default_console, prompt: str = DEFAULT_PROMPT) -> None:
        self.console = console
        self.prompt = prompt

    def hand_off(self, staging_path: Path, target: Path) -> None:
        self.console.out(str(staging_path))
        try:
            self.console.input(self.prompt)
        except EOFError:
            raise EditAbortedError(
                f"Input closed before confirmation; {target} left unchanged",
                hint="Press Enter once the staging file is saved",
            )


class EditorChannel(ContinuationChannel):
    """Runs an editor on the staging copy and continues when it exits."""

    def __init__(
        self,
        editor: str,
        executor: CommandExecutor,
        console: Console = default_console,
    ) -> None:
        """Initialize editor channel.

        Args:
            editor: Editor command line, e.g. "vim" or "code --wait"
            executor: Runs the editor with the caller's own privileges
            console: Console for output
        """
        self.editor = editor
        self.executor = executor
        self.console = console

    @property
    def argv(self) -> list[str]:
        """Editor command split into arguments."""
        return shlex.split(self.editor)

    def hand_off(self, staging_path: Path, target: Path) -> None:
        self.console.out(str(staging_path))
        try:
            self.executor.run(
                self.argv + [str(staging_path)],
                description=f"Opening {target} in {self.argv[0]}",
                capture=False,
            )
        except ExecutionError as e:
            raise EditAbortedError(
                f"Editor did not finish cleanly; {target} left unchanged",
                hint="Save and quit the editor normally to commit changes",
                details=e.details,
            ) from e
