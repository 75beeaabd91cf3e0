"""
Molang Expressions - a restricted evaluator for particle-file expressions

Supports numbers, namespaced variables (variable./v., temp./t.,
query./q.), + - * / with parentheses, unary minus, and an allow-list of
math.* functions. Trigonometry works in degrees, as in the source
format. Nothing here ever hands text to Python's own evaluator.

Static import resolves expressions to constants; expressions that vary
with variable.emitter_age are compiled into per-axis functions instead.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from ..core.utils import MathUtils

logger = logging.getLogger(__name__)

EMITTER_AGE = 'variable.emitter_age'

_NUMBER_LITERAL = re.compile(r'-?\d+(?:\.\d+)?')
_EMITTER_AGE_REF = re.compile(r'\b(?:variable|v)\.emitter_age\b', re.IGNORECASE)
_TOKEN = re.compile(r'\s*(?:(\d+\.\d*|\.\d+|\d+)|([A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*)|(.))')

# Deepest nesting and syntax-tree height accepted from one expression
MAX_DEPTH = 64

_NAMESPACE_ALIASES = {
    'v': 'variable',
    't': 'temp',
    'q': 'query',
    'c': 'context',
}


class ExpressionError(ValueError):
    """Raised for text the restricted grammar cannot parse or evaluate"""


# ============================================================================
# Syntax Tree
# ============================================================================

@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class Unary:
    op: str
    operand: Any
    depth: int = field(default=2, compare=False, repr=False)


@dataclass(frozen=True)
class Binary:
    op: str
    left: Any
    right: Any
    depth: int = field(default=2, compare=False, repr=False)


@dataclass(frozen=True)
class Call:
    name: str
    args: Tuple[Any, ...]
    depth: int = field(default=1, compare=False, repr=False)


Node = Union[Number, Variable, Unary, Binary, Call]


def _subtree_depth(*children: Node) -> int:
    """Height of a node over the given children (leaves count as 1)"""
    return 1 + max((getattr(child, 'depth', 1) for child in children), default=0)


def canonical_name(name: str) -> str:
    """Lowercase and expand short namespaces: 'v.Foo' -> 'variable.foo'"""
    name = name.lower()
    head, sep, tail = name.partition('.')
    if sep and head in _NAMESPACE_ALIASES:
        return f"{_NAMESPACE_ALIASES[head]}.{tail}"
    return name


# ============================================================================
# Tokenizer & Parser
# ============================================================================

def tokenize(text: str) -> List[Tuple[str, str]]:
    """Split text into (kind, value) tokens: num, name, op"""
    tokens = []
    pos = 0
    text = text.strip()
    while pos < len(text):
        match = _TOKEN.match(text, pos)
        if match is None:
            break
        number, name, op = match.groups()
        if number is not None:
            tokens.append(('num', number))
        elif name is not None:
            tokens.append(('name', name))
        elif op is not None:
            if op not in '+-*/(),':
                raise ExpressionError(f"Unsupported character {op!r} in {text!r}")
            tokens.append(('op', op))
        pos = match.end()
    return tokens


class _Parser:
    """
    Recursive descent over the token list.

    Parentheses, unary signs and call arguments each open one nesting
    level, and every node records the height of its subtree; either
    passing MAX_DEPTH is an ExpressionError.
    """

    def __init__(self, text: str):
        self.text = text
        self.tokens = tokenize(text)
        self.pos = 0
        self.nesting = 0

    def parse(self) -> Node:
        if not self.tokens:
            raise ExpressionError("Empty expression")
        node = self._expression()
        if self.pos != len(self.tokens):
            raise ExpressionError(f"Unexpected {self.tokens[self.pos][1]!r} in {self.text!r}")
        return node

    def _peek(self) -> Optional[Tuple[str, str]]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _take_op(self, *ops: str) -> Optional[str]:
        token = self._peek()
        if token and token[0] == 'op' and token[1] in ops:
            self.pos += 1
            return token[1]
        return None

    def _expect(self, op: str) -> None:
        if self._take_op(op) is None:
            raise ExpressionError(f"Expected {op!r} in {self.text!r}")

    def _nested(self, parse: Callable[[], Any]) -> Any:
        if self.nesting >= MAX_DEPTH:
            raise ExpressionError(f"Expression nested too deeply (over {MAX_DEPTH} levels)")
        self.nesting += 1
        try:
            return parse()
        finally:
            self.nesting -= 1

    def _checked(self, node: Node) -> Node:
        if node.depth > MAX_DEPTH:
            raise ExpressionError(f"Expression nested too deeply (over {MAX_DEPTH} levels)")
        return node

    def _expression(self) -> Node:
        node = self._term()
        while True:
            op = self._take_op('+', '-')
            if op is None:
                return node
            right = self._term()
            node = self._checked(Binary(op, node, right, _subtree_depth(node, right)))

    def _term(self) -> Node:
        node = self._unary()
        while True:
            op = self._take_op('*', '/')
            if op is None:
                return node
            right = self._unary()
            node = self._checked(Binary(op, node, right, _subtree_depth(node, right)))

    def _unary(self) -> Node:
        op = self._take_op('-', '+')
        if op is None:
            return self._primary()
        operand = self._nested(self._unary)
        return self._checked(Unary(op, operand, _subtree_depth(operand)))

    def _primary(self) -> Node:
        token = self._peek()
        if token is None:
            raise ExpressionError(f"Unexpected end of {self.text!r}")
        kind, value = token

        if kind == 'num':
            self.pos += 1
            return Number(float(value))

        if kind == 'name':
            self.pos += 1
            name = canonical_name(value)
            if self._take_op('('):
                args = self._nested(self._arguments)
                return self._checked(Call(name, args, _subtree_depth(*args)))
            return Variable(name)

        if self._take_op('('):
            node = self._nested(self._expression)
            self._expect(')')
            return node

        raise ExpressionError(f"Unexpected {value!r} in {self.text!r}")

    def _arguments(self) -> Tuple[Node, ...]:
        args = []
        if self._take_op(')') is None:
            args.append(self._expression())
            while self._take_op(','):
                args.append(self._expression())
            self._expect(')')
        return tuple(args)


def parse_expression(text: str) -> Node:
    """Parse expression text into a syntax tree"""
    if not isinstance(text, str):
        raise ExpressionError(f"Expression must be text, got {type(text).__name__}")
    return _Parser(text).parse()


# ============================================================================
# Evaluation
# ============================================================================

def _deg(fn: Callable[[float], float]) -> Callable[[float], float]:
    return lambda degrees: fn(math.radians(degrees))


def _to_deg(fn: Callable[..., float]) -> Callable[..., float]:
    return lambda *args: math.degrees(fn(*args))


def _random(low: float, high: float) -> float:
    # Static import takes the midpoint of a random range
    return (low + high) / 2


def _round(value: float) -> float:
    return float(math.floor(value + 0.5))


# name -> (function, min args, max args)
FUNCTIONS: Dict[str, Tuple[Callable[..., float], int, int]] = {
    'math.sin': (_deg(math.sin), 1, 1),
    'math.cos': (_deg(math.cos), 1, 1),
    'math.tan': (_deg(math.tan), 1, 1),
    'math.asin': (_to_deg(math.asin), 1, 1),
    'math.acos': (_to_deg(math.acos), 1, 1),
    'math.atan': (_to_deg(math.atan), 1, 1),
    'math.atan2': (_to_deg(math.atan2), 2, 2),
    'math.abs': (abs, 1, 1),
    'math.sqrt': (math.sqrt, 1, 1),
    'math.exp': (math.exp, 1, 1),
    'math.ln': (math.log, 1, 1),
    'math.floor': (lambda v: float(math.floor(v)), 1, 1),
    'math.ceil': (lambda v: float(math.ceil(v)), 1, 1),
    'math.round': (_round, 1, 1),
    'math.trunc': (lambda v: float(math.trunc(v)), 1, 1),
    'math.min': (min, 2, 2),
    'math.max': (max, 2, 2),
    'math.clamp': (MathUtils.clamp, 3, 3),
    'math.lerp': (MathUtils.lerp, 3, 3),
    'math.pow': (math.pow, 2, 2),
    'math.mod': (math.fmod, 2, 2),
    'math.random': (_random, 2, 2),
    'math.random_integer': (lambda low, high: _round(_random(low, high)), 2, 2),
    'math.pi': (lambda: math.pi, 0, 0),
}

CONSTANTS: Dict[str, float] = {
    'math.pi': math.pi,
}


def evaluate(node: Node, variables: Dict[str, float]) -> float:
    """
    Evaluate a syntax tree.

    Args:
        node: Parsed expression
        variables: Canonical variable names mapped to values

    Raises:
        ExpressionError: unknown variable or function, wrong argument
            count, or an arithmetic fault
    """
    if isinstance(node, Number):
        return node.value

    if isinstance(node, Variable):
        if node.name in variables:
            return float(variables[node.name])
        if node.name in CONSTANTS:
            return CONSTANTS[node.name]
        raise ExpressionError(f"Unresolved variable {node.name!r}")

    if isinstance(node, Unary):
        value = evaluate(node.operand, variables)
        return -value if node.op == '-' else value

    if isinstance(node, Binary):
        left = evaluate(node.left, variables)
        right = evaluate(node.right, variables)
        if node.op == '+':
            return left + right
        if node.op == '-':
            return left - right
        if node.op == '*':
            return left * right
        if right == 0:
            raise ExpressionError("Division by zero")
        return left / right

    if isinstance(node, Call):
        entry = FUNCTIONS.get(node.name)
        if entry is None:
            raise ExpressionError(f"Unsupported function {node.name!r}")
        fn, min_args, max_args = entry
        if not min_args <= len(node.args) <= max_args:
            raise ExpressionError(f"{node.name} takes {min_args} argument(s), got {len(node.args)}")
        args = [evaluate(arg, variables) for arg in node.args]
        try:
            return float(fn(*args))
        except (ValueError, OverflowError, ZeroDivisionError) as e:
            raise ExpressionError(f"{node.name} failed: {e}") from e

    raise ExpressionError(f"Unknown node {node!r}")


# ============================================================================
# Context
# ============================================================================

@dataclass
class ExpressionContext:
    """
    Values substituted for well-known and user-defined variables.

    Random pseudo-variables read as 0.5 and ages as 0, so static import
    picks the middle of any random range at the start of life.
    """
    lifetime: float = 1.0
    size: float = 0.22
    variables: Dict[str, float] = field(default_factory=dict)

    def lookup(self) -> Dict[str, float]:
        values = {
            'variable.particle_age': 0.0,
            'variable.particle_lifetime': self.lifetime,
            'variable.emitter_lifetime': self.lifetime,
            'variable.particle_size': self.size,
            'variable.size': self.size,
        }
        for i in range(1, 5):
            values[f'variable.particle_random_{i}'] = 0.5
            values[f'variable.emitter_random_{i}'] = 0.5
        values.update(self.variables)
        return values

    def define(self, name: str, value: float) -> None:
        self.variables[canonical_name(name)] = value


def evaluate_text(text: str, context: Optional[ExpressionContext] = None,
                  extra: Optional[Dict[str, float]] = None) -> float:
    """Parse and evaluate text; raises ExpressionError on any failure"""
    variables = (context or ExpressionContext()).lookup()
    if extra:
        variables.update(extra)
    value = evaluate(parse_expression(text), variables)
    if not math.isfinite(value):
        raise ExpressionError(f"Non-finite result for {text!r}")
    return value


def parse_init_block(text: Any, context: ExpressionContext) -> List[str]:
    """
    Run 'name = expression;' statements in order, defining each name.

    Statements that cannot be evaluated are skipped.

    Returns:
        Canonical names defined
    """
    defined = []
    if not isinstance(text, str):
        return defined
    for statement in text.split(';'):
        name, sep, expression = statement.partition('=')
        name = name.strip()
        if not sep or not name or not expression.strip():
            continue
        try:
            value = evaluate_text(expression, context)
        except ExpressionError as e:
            logger.debug("Skipping init statement %r: %s", statement.strip(), e)
            continue
        context.define(name, value)
        defined.append(canonical_name(name))
    return defined


# ============================================================================
# Resolution
# ============================================================================

def extract_numbers(value: Any) -> List[float]:
    """Every numeric literal in a number or text"""
    if MathUtils.is_finite(value):
        return [float(value)]
    if isinstance(value, str):
        return [float(m) for m in _NUMBER_LITERAL.findall(value)]
    return []


def resolve_number(value: Any, default: float = 0.0,
                   context: Optional[ExpressionContext] = None) -> float:
    """
    Best-effort constant for a literal or expression.

    Evaluates the expression when the grammar allows; otherwise takes the
    midpoint of a random(a, b) range, then the first literal, then the
    default.
    """
    if MathUtils.is_finite(value):
        return float(value)
    if not isinstance(value, str):
        return default

    try:
        return evaluate_text(value, context)
    except ExpressionError as e:
        logger.debug("Falling back to literal extraction for %r: %s", value, e)

    numbers = extract_numbers(value)
    if not numbers:
        return default
    if 'random' in value.lower() and len(numbers) >= 2:
        return (numbers[0] + numbers[1]) / 2
    return numbers[0]


def mentions_emitter_age(value: Any) -> bool:
    return isinstance(value, str) and bool(_EMITTER_AGE_REF.search(value))


def compile_axis_expression(
    expression: Any,
    context: Optional[ExpressionContext] = None,
) -> Optional[Callable[[float], float]]:
    """
    Compile a time-varying axis expression into f(elapsed_seconds).

    Returns None unless the expression references the emitter age and
    evaluates at time 0. The compiled function returns 0 for any
    evaluation fault or non-finite result.
    """
    if not mentions_emitter_age(expression):
        return None
    try:
        tree = parse_expression(expression)
        variables = (context or ExpressionContext()).lookup()
        evaluate(tree, {**variables, EMITTER_AGE: 0.0})
    except ExpressionError as e:
        logger.debug("Cannot compile axis expression %r: %s", expression, e)
        return None

    def axis(time: float) -> float:
        try:
            value = evaluate(tree, {**variables, EMITTER_AGE: float(time)})
        except ExpressionError:
            return 0.0
        return value if math.isfinite(value) else 0.0

    return axis
