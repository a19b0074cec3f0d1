"""Function-calling definitions carried on requests."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
from typing import TYPE_CHECKING, Any

from chorus.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    FunctionExecutor = Callable[["FunctionCall"], "FunctionResponse"]


@dataclass(frozen=True)
class FunctionDefinition:
    """A function the model may call.

    ``parameters`` is a JSON Schema object; use ``{}`` for no parameters.
    """

    name: str
    description: str
    parameters: dict[str, Any] | None = None

    def validate(self) -> None:
        """Raise ConfigurationError when the definition is incomplete."""
        if not self.name:
            raise ConfigurationError("function definition must have a name")
        if not self.description:
            raise ConfigurationError(
                f"function {self.name!r} must have a description"
            )
        if self.parameters is None:
            raise ConfigurationError(
                f"function {self.name!r} must have a parameters schema",
                hint="Use parameters={} for functions without arguments.",
            )


@dataclass(frozen=True)
class FunctionCall:
    """A function call requested by the model."""

    name: str
    arguments: str = "{}"

    def parsed_arguments(self) -> dict[str, Any]:
        """Decode ``arguments`` as a JSON object."""
        value = json.loads(self.arguments or "{}")
        if not isinstance(value, dict):
            raise ValueError(f"arguments for {self.name!r} are not a JSON object")
        return value


@dataclass(frozen=True)
class FunctionResponse:
    """Outcome of executing a FunctionCall."""

    name: str
    content: Any = None
    error: str | None = None


@dataclass
class FunctionRegistry:
    """Named collection of function definitions."""

    _functions: dict[str, FunctionDefinition] = field(default_factory=dict)

    def register(self, definition: FunctionDefinition) -> None:
        """Validate and add *definition*; duplicate names are rejected."""
        definition.validate()
        if definition.name in self._functions:
            raise ConfigurationError(
                f"function already registered: {definition.name}"
            )
        self._functions[definition.name] = definition

    def register_many(self, definitions: Iterable[FunctionDefinition]) -> None:
        for definition in definitions:
            self.register(definition)

    def get(self, name: str) -> FunctionDefinition | None:
        return self._functions.get(name)

    def definitions(self) -> list[FunctionDefinition]:
        return list(self._functions.values())

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def __len__(self) -> int:
        return len(self._functions)

    def create_executor(
        self, handler: Callable[[str, dict[str, Any]], Any]
    ) -> FunctionExecutor:
        """Return an executor that dispatches registered calls to *handler*.

        Unknown functions and handler failures are reported in the
        FunctionResponse rather than raised.
        """

        def execute(call: FunctionCall) -> FunctionResponse:
            if call.name not in self._functions:
                return FunctionResponse(
                    name=call.name, error=f"function not found: {call.name}"
                )
            try:
                result = handler(call.name, call.parsed_arguments())
            except Exception as exc:
                return FunctionResponse(name=call.name, error=str(exc))
            return FunctionResponse(name=call.name, content=result)

        return execute
