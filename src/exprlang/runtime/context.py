"""
Execution context for the exprlang evaluator.

Manages the stack of variable frames, the host environment and the
program's function table.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional

from .values import Object, UserFunction, NativeFunction, wrap_value
from ..ast import FunctionDef, Program
from ..config import EvaluatorConfig
from ..errors import (
    error_undefined_variable,
    error_undeclared_assignment,
    error_undefined_function,
    error_undefined_env_variable,
)

logger = logging.getLogger(__name__)

Frame = Dict[str, Object]


class Stack:
    """
    A stack of variable frames, innermost last.

    The outermost frame exists for the lifetime of the stack and holds the
    program's functions and top-level variables.
    """

    def __init__(self):
        self.frames: List[Frame] = [{}]

    def push(self) -> Frame:
        frame: Frame = {}
        self.frames.append(frame)
        return frame

    def pop(self) -> Frame:
        if len(self.frames) == 1:
            raise RuntimeError("cannot pop the outermost frame")
        return self.frames.pop()

    @property
    def depth(self) -> int:
        return len(self.frames)

    def insert(self, name: str, value: Object) -> None:
        """Bind a name in the innermost frame, shadowing outer bindings."""
        self.frames[-1][name] = value

    def lookup(self, name: str) -> Optional[Object]:
        """Find the nearest binding for a name, innermost frame first."""
        for frame in reversed(self.frames):
            if name in frame:
                return frame[name]
        return None

    def assign(self, name: str, value: Object) -> bool:
        """
        Rebind a name in the nearest frame that declares it.

        Returns True if found and updated, False if not found.
        """
        for frame in reversed(self.frames):
            if name in frame:
                frame[name] = value
                return True
        return False

    def inspect(self) -> str:
        """Render every frame, outermost first, for debugging."""
        lines = []
        for depth, frame in enumerate(self.frames):
            bindings = ", ".join(f"{name}: {value.inspect()}" for name, value in frame.items())
            lines.append(f"#{depth} {{{bindings}}}")
        return "\n".join(lines)


class Context:
    """
    Everything a program needs at run time.

    Holds the variable stack, the parsed program, the host environment
    (read through ``$name``) and the evaluator configuration. Every function
    declared by the program is bound in the outermost frame as a
    ``UserFunction`` value.

    Usage:
        ctx = Context(parse(source))
        ctx.define("greeting", "hello")
        result = Evaluator(ctx).eval()
    """

    def __init__(self, program: Optional[Program] = None,
                 environment: Optional[Mapping[str, Any]] = None,
                 config: Optional[EvaluatorConfig] = None,
                 source: str = ""):
        self.program = program if program is not None else Program()
        self.config = config if config is not None else EvaluatorConfig()
        self.stack = Stack()
        self.environment: Dict[str, Object] = {}
        self.source_lines: List[str] = source.splitlines()

        for name in self.program.functions:
            self.stack.insert(name, UserFunction(name))
        for name, value in (environment or {}).items():
            self.define(name, value)

    def define(self, name: str, value: Any) -> None:
        """Provide a host value, visible to the program as ``$name``."""
        if callable(value) and not isinstance(value, Object):
            value = NativeFunction(name, value)
        self.environment[name] = wrap_value(value)

    def get_env_variable(self, name: str) -> Object:
        if name not in self.environment:
            raise error_undefined_env_variable(name)
        return self.environment[name]

    def get_variable(self, name: str) -> Object:
        """Look up a variable on the stack, falling back to the environment."""
        value = self.stack.lookup(name)
        if value is None:
            value = self.environment.get(name)
        if value is None:
            raise error_undefined_variable(name)
        return value

    def declare_variable(self, name: str, value: Object) -> None:
        """Define a new variable in the current frame."""
        self.stack.insert(name, value)

    def set_variable(self, name: str, value: Object) -> None:
        """Update an existing variable (for assignment)."""
        if not self.stack.assign(name, value):
            raise error_undeclared_assignment(name)

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a source line (1-indexed) for error messages."""
        if 1 <= line_num <= len(self.source_lines):
            return self.source_lines[line_num - 1]
        return None

    def get_function(self, name: str) -> FunctionDef:
        function = self.program.functions.get(name)
        if function is None:
            raise error_undefined_function(name)
        return function

    @contextmanager
    def scope(self, name: str = "block") -> Iterator[Frame]:
        """
        Context manager that pushes a frame and always pops it.

        Usage:
            with ctx.scope("for-loop"):
                ctx.declare_variable("i", Integer(0))
        """
        frame = self.stack.push()
        logger.debug("push %s frame (depth %d)", name, self.stack.depth)
        try:
            yield frame
        finally:
            self.stack.pop()
            logger.debug("pop %s frame (depth %d)", name, self.stack.depth)
