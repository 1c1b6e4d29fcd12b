"""
exprlang runtime - tree-walking evaluator.

This module provides:
- Evaluator: Executes a parsed Program
- Object and its kinds: Runtime values with arithmetic and comparison rules
- Context / Stack: Variable frames, host environment and function table
"""

from .values import (
    ValueKind,
    Comparison,
    Object,
    Null,
    Boolean,
    Integer,
    Float,
    String,
    Array,
    UserFunction,
    NativeFunction,
    wrap_value,
    unwrap_value,
    compare_values,
)

from .context import (
    Stack,
    Context,
)

from .interpreter import (
    FlowKind,
    ControlFlow,
    Evaluator,
    run,
)

__all__ = [
    # Values
    "ValueKind",
    "Comparison",
    "Object",
    "Null",
    "Boolean",
    "Integer",
    "Float",
    "String",
    "Array",
    "UserFunction",
    "NativeFunction",
    "wrap_value",
    "unwrap_value",
    "compare_values",
    # Context
    "Stack",
    "Context",
    # Evaluator
    "FlowKind",
    "ControlFlow",
    "Evaluator",
    "run",
]
