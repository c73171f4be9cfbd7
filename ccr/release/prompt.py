"""User interaction: yes/no, pick-one and free-text questions.

`TyperPrompt` asks on the terminal. `ScriptedPrompt` answers from answers
seeded up front, keyed by the exact question text; each seeded answer is
consumed once, and `assert_consumed()` reports answers nobody asked for.
It backs `--no-interactive` runs and the tests.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from ccr.core.result import Err, Ok, Result
from ccr.output.console import ConsoleProtocol, Style
from ccr.release.errors import PromptUnavailableError

__all__ = [
    "PromptProtocol",
    "ScriptedPrompt",
    "TyperPrompt",
    "parse_answer_overrides",
]

_TRUE_WORDS = frozenset({"y", "yes", "true", "1", "on"})
_FALSE_WORDS = frozenset({"n", "no", "false", "0", "off"})


class PromptProtocol(Protocol):
    def confirm(self, message: str) -> Result[bool, PromptUnavailableError]: ...

    def choose_one(
        self, message: str, choices: Sequence[str]
    ) -> Result[str, PromptUnavailableError]: ...

    def ask(
        self, message: str, default: str | None = None
    ) -> Result[str, PromptUnavailableError]: ...


class TyperPrompt:
    """Terminal prompts; blocks until the user answers."""

    def __init__(self, console: ConsoleProtocol) -> None:
        self._console = console

    def confirm(self, message: str) -> Result[bool, PromptUnavailableError]:
        import typer

        return Ok(bool(typer.confirm(message, default=False)))

    def choose_one(self, message: str, choices: Sequence[str]) -> Result[str, PromptUnavailableError]:
        import typer

        self._console.print(message, Style.HEADER)
        for i, choice in enumerate(choices, start=1):
            self._console.print(f"{i:2}. {choice}", Style.DIM)

        while True:
            raw = str(typer.prompt("Pick a number", default="1")).strip()
            picked = _match_choice(raw, choices)
            if picked is not None:
                return Ok(picked)
            self._console.error("invalid choice")

    def ask(self, message: str, default: str | None = None) -> Result[str, PromptUnavailableError]:
        import typer

        if default is None:
            return Ok(str(typer.prompt(message)).strip())
        return Ok(str(typer.prompt(message, default=default)).strip())


@dataclass
class ScriptedPrompt:
    """Answers questions from seeded responses, keyed by exact message text.

    Without a fallback, an unseeded question is an error (non-interactive
    run). With one, the fallback is asked instead.
    """

    responses: dict[str, list[str | bool]] = field(default_factory=dict)
    fallback: PromptProtocol | None = None
    asked: list[str] = field(default_factory=list)

    def seed(self, message: str, answer: str | bool) -> ScriptedPrompt:
        self.responses.setdefault(message, []).append(answer)
        return self

    def confirm(self, message: str) -> Result[bool, PromptUnavailableError]:
        answer = self._take(message)
        if answer is None:
            if self.fallback is not None:
                return self.fallback.confirm(message)
            return Err(_unseeded(message))

        if isinstance(answer, bool):
            return Ok(answer)
        word = answer.strip().lower()
        if word in _TRUE_WORDS:
            return Ok(True)
        if word in _FALSE_WORDS:
            return Ok(False)
        return Err(
            PromptUnavailableError(
                prompt=message,
                message=f"answer {answer!r} is not yes/no for: {message}",
            )
        )

    def choose_one(self, message: str, choices: Sequence[str]) -> Result[str, PromptUnavailableError]:
        answer = self._take(message)
        if answer is None:
            if self.fallback is not None:
                return self.fallback.choose_one(message, choices)
            return Err(_unseeded(message))

        picked = _match_choice(str(answer), choices)
        if picked is None:
            return Err(
                PromptUnavailableError(
                    prompt=message,
                    message=f"answer {answer!r} is not one of {', '.join(choices)}",
                )
            )
        return Ok(picked)

    def ask(self, message: str, default: str | None = None) -> Result[str, PromptUnavailableError]:
        answer = self._take(message)
        if answer is None:
            if self.fallback is not None:
                return self.fallback.ask(message, default)
            if default is not None:
                return Ok(default)
            return Err(_unseeded(message))
        return Ok(str(answer).strip())

    @property
    def unconsumed(self) -> dict[str, list[str | bool]]:
        return {k: v for k, v in self.responses.items() if v}

    def assert_consumed(self) -> None:
        """Fail if a seeded answer was never asked for."""
        leftover = self.unconsumed
        if leftover:
            raise AssertionError(f"unconsumed prompt answers: {leftover}")

    def _take(self, message: str) -> str | bool | None:
        self.asked.append(message)
        queue = self.responses.get(message)
        if not queue:
            return None
        return queue.pop(0)


def parse_answer_overrides(items: Sequence[str]) -> Result[ScriptedPrompt, str]:
    """Parse repeated `--answer "<question>=<answer>"` values.

    The split happens on the last "=" so questions may contain one.
    """
    prompt = ScriptedPrompt()
    for item in items:
        if "=" not in item:
            return Err(f"invalid --answer (expected question=answer): {item}")
        question, answer = item.rsplit("=", 1)
        question = question.strip()
        if not question:
            return Err(f"invalid --answer (expected question=answer): {item}")
        prompt.seed(question, answer.strip())
    return Ok(prompt)


def _match_choice(raw: str, choices: Sequence[str]) -> str | None:
    raw = raw.strip()
    if raw.isdigit():
        idx = int(raw)
        if 1 <= idx <= len(choices):
            return choices[idx - 1]
        return None
    for choice in choices:
        if choice.lower() == raw.lower():
            return choice
    return None


def _unseeded(message: str) -> PromptUnavailableError:
    return PromptUnavailableError(
        prompt=message,
        message=f"no answer provided for: {message}",
    )
