# services/condition_evaluator.py
"""
Évaluation des codes de condition ABAC.

Condition codes are written by administrators in a small JavaScript-like
language and evaluated against the request attribute bag, exposed as the
``attributes`` binding. The language is parsed into a tree and interpreted;
nothing is ever handed to ``eval``/``exec``.

Supported syntax:

    statements   return EXPR;   if (EXPR) STMT else STMT   { ... }
                 const|let|var NAME = EXPR;   EXPR;
    operators    ||  &&  !  ==  ===  !=  !==  <  <=  >  >=  in
                 +  -  *  /  %  ?:
    values       'str' "str" 12 1.5 true false null undefined [a, b]
    access       attributes.user.id  attributes['key']  list[0]  x.length
    methods      includes startsWith endsWith toLowerCase toUpperCase trim

A program that finishes without ``return`` yields false, and only a boolean
``true`` result grants. Any syntax or runtime error yields false.
"""

import logging
import math
import re
from dataclasses import dataclass
from collections.abc import Mapping
from typing import Any, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_MAX_LENGTH = 4000
DEFAULT_MAX_STEPS = 10000


class ConditionError(Exception):
    """Base class for condition parsing and evaluation errors"""


class ConditionSyntaxError(ConditionError):
    def __init__(self, message: str, position: int = 0):
        self.position = position
        super().__init__(f"Syntax error at position {position}: {message}")


class ConditionRuntimeError(ConditionError):
    pass


class _Undefined:
    """Valeur d'un attribut absent (distincte de null)"""

    def __repr__(self):
        return "undefined"


UNDEFINED = _Undefined()


# ===================== LEXER =====================

@dataclass
class Token:
    type: str  # NUMBER, STRING, IDENT, KEYWORD, OP, EOF
    value: Any
    position: int


KEYWORDS = {
    'return', 'if', 'else', 'const', 'let', 'var',
    'true', 'false', 'null', 'undefined', 'in',
}

# Longest first so that '===' wins over '==' and '='
OPERATORS = sorted([
    '===', '!==', '==', '!=', '<=', '>=', '&&', '||',
    '<', '>', '!', '+', '-', '*', '/', '%',
    '(', ')', '{', '}', '[', ']', '.', ',', ';', '?', ':', '=',
], key=len, reverse=True)

_NUMBER_RE = re.compile(r'(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?')
_IDENT_RE = re.compile(r'[A-Za-z_$][A-Za-z0-9_$]*')

_ESCAPES = {'n': '\n', 't': '\t', 'r': '\r', 'b': '\b', 'f': '\f', 'v': '\v', '0': '\0'}


def _read_string(source: str, start: int) -> Tuple[str, int]:
    quote = source[start]
    pos = start + 1
    chars = []
    while pos < len(source):
        ch = source[pos]
        if ch == quote:
            return ''.join(chars), pos + 1
        if ch == '\n':
            break
        if ch == '\\':
            pos += 1
            if pos >= len(source):
                break
            esc = source[pos]
            if esc == 'u':
                digits = source[pos + 1:pos + 5]
                if len(digits) != 4 or not all(c in '0123456789abcdefABCDEF' for c in digits):
                    raise ConditionSyntaxError("Invalid unicode escape", pos)
                chars.append(chr(int(digits, 16)))
                pos += 5
                continue
            chars.append(_ESCAPES.get(esc, esc))
            pos += 1
            continue
        chars.append(ch)
        pos += 1
    raise ConditionSyntaxError("Unterminated string literal", start)


def tokenize(source: str) -> List[Token]:
    """Tokenize condition source into a list of tokens ending with EOF."""
    tokens: List[Token] = []
    pos = 0
    length = len(source)

    while pos < length:
        ch = source[pos]

        if ch.isspace():
            pos += 1
            continue

        # Comments
        if source.startswith('//', pos):
            end = source.find('\n', pos)
            pos = length if end == -1 else end
            continue
        if source.startswith('/*', pos):
            end = source.find('*/', pos + 2)
            if end == -1:
                raise ConditionSyntaxError("Unterminated comment", pos)
            pos = end + 2
            continue

        if ch in ('"', "'"):
            value, end = _read_string(source, pos)
            tokens.append(Token('STRING', value, pos))
            pos = end
            continue

        if ch in '0123456789' or (ch == '.' and source[pos + 1:pos + 2] in tuple('0123456789')):
            match = _NUMBER_RE.match(source, pos)
            text = match.group(0)
            value = float(text) if any(c in text for c in '.eE') else int(text)
            tokens.append(Token('NUMBER', value, pos))
            pos = match.end()
            continue

        match = _IDENT_RE.match(source, pos)
        if match:
            word = match.group(0)
            tokens.append(Token('KEYWORD' if word in KEYWORDS else 'IDENT', word, pos))
            pos = match.end()
            continue

        for op in OPERATORS:
            if source.startswith(op, pos):
                tokens.append(Token('OP', op, pos))
                pos += len(op)
                break
        else:
            raise ConditionSyntaxError(f"Unexpected character {ch!r}", pos)

    tokens.append(Token('EOF', None, length))
    return tokens


# ===================== PARSER =====================

class _Parser:
    """Recursive-descent parser producing tuple-based syntax trees."""

    def __init__(self, tokens: List[Token]):
        self._tokens = tokens
        self._pos = 0

    def parse_program(self) -> List[tuple]:
        statements = []
        while not self._check('EOF'):
            statements.append(self._statement())
        return statements

    # -- Statements --

    def _statement(self) -> tuple:
        tok = self._current()

        if self._check_op(';'):
            self._advance()
            return ('empty',)

        if self._check_op('{'):
            self._advance()
            body = []
            while not self._check_op('}'):
                if self._check('EOF'):
                    raise ConditionSyntaxError("Expected '}' before end of input", tok.position)
                body.append(self._statement())
            self._advance()
            return ('block', body)

        if self._check_keyword('return'):
            self._advance()
            value = None
            if not (self._check_op(';') or self._check_op('}') or self._check('EOF')):
                value = self._expression()
            self._skip_semicolon()
            return ('return', value)

        if self._check_keyword('if'):
            self._advance()
            self._expect_op('(')
            test = self._expression()
            self._expect_op(')')
            consequent = self._statement()
            alternate = None
            if self._check_keyword('else'):
                self._advance()
                alternate = self._statement()
            return ('if', test, consequent, alternate)

        if tok.type == 'KEYWORD' and tok.value in ('const', 'let', 'var'):
            self._advance()
            name_tok = self._current()
            if name_tok.type != 'IDENT':
                raise ConditionSyntaxError(f"Expected variable name, got {name_tok.value!r}", name_tok.position)
            self._advance()
            self._expect_op('=')
            value = self._expression()
            self._skip_semicolon()
            return ('declare', name_tok.value, value)

        expr = self._expression()
        self._skip_semicolon()
        return ('expr', expr)

    # -- Expressions, lowest precedence first --

    def _expression(self) -> tuple:
        return self._conditional()

    def _conditional(self) -> tuple:
        test = self._logical_or()
        if self._check_op('?'):
            self._advance()
            consequent = self._expression()
            self._expect_op(':')
            alternate = self._expression()
            return ('conditional', test, consequent, alternate)
        return test

    def _logical_or(self) -> tuple:
        left = self._logical_and()
        while self._check_op('||'):
            self._advance()
            left = ('logical', '||', left, self._logical_and())
        return left

    def _logical_and(self) -> tuple:
        left = self._equality()
        while self._check_op('&&'):
            self._advance()
            left = ('logical', '&&', left, self._equality())
        return left

    def _equality(self) -> tuple:
        left = self._relational()
        while self._current().type == 'OP' and self._current().value in ('==', '===', '!=', '!=='):
            op = self._advance().value
            left = ('binary', op, left, self._relational())
        return left

    def _relational(self) -> tuple:
        left = self._additive()
        while True:
            tok = self._current()
            if tok.type == 'OP' and tok.value in ('<', '<=', '>', '>='):
                op = self._advance().value
            elif self._check_keyword('in'):
                op = self._advance().value
            else:
                return left
            left = ('binary', op, left, self._additive())

    def _additive(self) -> tuple:
        left = self._multiplicative()
        while self._current().type == 'OP' and self._current().value in ('+', '-'):
            op = self._advance().value
            left = ('binary', op, left, self._multiplicative())
        return left

    def _multiplicative(self) -> tuple:
        left = self._unary()
        while self._current().type == 'OP' and self._current().value in ('*', '/', '%'):
            op = self._advance().value
            left = ('binary', op, left, self._unary())
        return left

    def _unary(self) -> tuple:
        tok = self._current()
        if tok.type == 'OP' and tok.value in ('!', '-', '+'):
            self._advance()
            return ('unary', tok.value, self._unary())
        return self._postfix()

    def _postfix(self) -> tuple:
        expr = self._primary()
        while True:
            if self._check_op('.'):
                self._advance()
                name_tok = self._current()
                if name_tok.type not in ('IDENT', 'KEYWORD'):
                    raise ConditionSyntaxError(
                        f"Expected property name after '.', got {name_tok.value!r}", name_tok.position)
                self._advance()
                if self._check_op('('):
                    expr = ('call', expr, name_tok.value, self._arguments())
                else:
                    expr = ('member', expr, ('literal', name_tok.value))
            elif self._check_op('['):
                self._advance()
                key = self._expression()
                self._expect_op(']')
                expr = ('member', expr, key)
            elif self._check_op('('):
                raise ConditionSyntaxError("Only whitelisted methods can be called", self._current().position)
            else:
                return expr

    def _arguments(self) -> List[tuple]:
        self._expect_op('(')
        args = []
        if not self._check_op(')'):
            args.append(self._expression())
            while self._check_op(','):
                self._advance()
                args.append(self._expression())
        self._expect_op(')')
        return args

    def _primary(self) -> tuple:
        tok = self._current()

        if tok.type in ('NUMBER', 'STRING'):
            self._advance()
            return ('literal', tok.value)

        if tok.type == 'KEYWORD':
            literals = {'true': True, 'false': False, 'null': None, 'undefined': UNDEFINED}
            if tok.value in literals:
                self._advance()
                return ('literal', literals[tok.value])
            raise ConditionSyntaxError(f"Unexpected keyword {tok.value!r}", tok.position)

        if tok.type == 'IDENT':
            self._advance()
            return ('name', tok.value)

        if self._check_op('('):
            self._advance()
            expr = self._expression()
            self._expect_op(')')
            return expr

        if self._check_op('['):
            self._advance()
            elements = []
            if not self._check_op(']'):
                elements.append(self._expression())
                while self._check_op(','):
                    self._advance()
                    if self._check_op(']'):
                        break
                    elements.append(self._expression())
            self._expect_op(']')
            return ('array', elements)

        got = "end of input" if tok.type == 'EOF' else repr(tok.value)
        raise ConditionSyntaxError(f"Unexpected {got}", tok.position)

    # -- Utility methods --

    def _current(self) -> Token:
        return self._tokens[self._pos]

    def _advance(self) -> Token:
        tok = self._tokens[self._pos]
        if tok.type != 'EOF':
            self._pos += 1
        return tok

    def _check(self, token_type: str) -> bool:
        return self._current().type == token_type

    def _check_op(self, value: str) -> bool:
        tok = self._current()
        return tok.type == 'OP' and tok.value == value

    def _check_keyword(self, value: str) -> bool:
        tok = self._current()
        return tok.type == 'KEYWORD' and tok.value == value

    def _expect_op(self, value: str) -> Token:
        tok = self._current()
        if not self._check_op(value):
            got = "end of input" if tok.type == 'EOF' else repr(tok.value)
            raise ConditionSyntaxError(f"Expected '{value}', got {got}", tok.position)
        return self._advance()

    def _skip_semicolon(self):
        if self._check_op(';'):
            self._advance()


def parse_condition(source: str, max_length: int = DEFAULT_MAX_LENGTH) -> List[tuple]:
    """Parse condition source into a list of statements."""
    if len(source) > max_length:
        raise ConditionSyntaxError(f"Condition exceeds {max_length} characters", max_length)
    return _Parser(tokenize(source)).parse_program()


# ===================== INTERPRETER =====================

def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_nullish(value) -> bool:
    return value is None or value is UNDEFINED


def _truthy(value) -> bool:
    if _is_nullish(value):
        return False
    if isinstance(value, bool):
        return value
    if _is_number(value):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        return len(value) > 0
    return True


def _type_name(value) -> str:
    if value is None:
        return 'null'
    if value is UNDEFINED:
        return 'undefined'
    if isinstance(value, bool):
        return 'boolean'
    if _is_number(value):
        return 'number'
    if isinstance(value, str):
        return 'string'
    if isinstance(value, list):
        return 'array'
    return 'object'


def _strict_equals(left, right) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if _is_number(left) and _is_number(right):
        return left == right
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    # null, undefined, objects and arrays compare by identity
    return left is right


def _loose_equals(left, right) -> bool:
    if _is_nullish(left) and _is_nullish(right):
        return True
    return _strict_equals(left, right)


def _get_member(target, key):
    if _is_nullish(target):
        raise ConditionRuntimeError(f"Cannot read property {key!r} of {_type_name(target)}")

    if isinstance(target, Mapping):
        if _is_number(key):
            key = str(int(key)) if float(key).is_integer() else str(key)
        if not isinstance(key, str):
            raise ConditionRuntimeError(f"Invalid property key of type {_type_name(key)}")
        return target.get(key, UNDEFINED)

    if isinstance(target, (list, str)):
        if key == 'length':
            return len(target)
        if _is_number(key) and float(key).is_integer() and 0 <= key < len(target):
            return target[int(key)]
        return UNDEFINED

    return UNDEFINED


def _expect_string_args(name, args, count):
    if len(args) != count or not all(isinstance(a, str) for a in args):
        raise ConditionRuntimeError(f"{name}() expects {count} string argument(s)")


def _call_method(target, name: str, args: List[Any]):
    if isinstance(target, str):
        if name in ('includes', 'startsWith', 'endsWith'):
            _expect_string_args(name, args, 1)
            if name == 'includes':
                return args[0] in target
            if name == 'startsWith':
                return target.startswith(args[0])
            return target.endswith(args[0])
        if name in ('toLowerCase', 'toUpperCase', 'trim'):
            _expect_string_args(name, args, 0)
            if name == 'toLowerCase':
                return target.lower()
            if name == 'toUpperCase':
                return target.upper()
            return target.strip()

    if isinstance(target, list) and name == 'includes':
        if len(args) != 1:
            raise ConditionRuntimeError("includes() expects 1 argument")
        return any(_strict_equals(item, args[0]) for item in target)

    raise ConditionRuntimeError(f"{_type_name(target)}.{name} is not a function")


def _arithmetic(op: str, left, right):
    if op == '+' and isinstance(left, str) and isinstance(right, str):
        return left + right
    if not (_is_number(left) and _is_number(right)):
        raise ConditionRuntimeError(
            f"Operator '{op}' not supported between {_type_name(left)} and {_type_name(right)}")
    if op == '+':
        return left + right
    if op == '-':
        return left - right
    if op == '*':
        return left * right
    if right == 0:
        raise ConditionRuntimeError("Division by zero")
    if op == '/':
        return left / right
    # JavaScript remainder keeps the sign of the dividend
    result = math.fmod(left, right)
    return int(result) if isinstance(left, int) and isinstance(right, int) else result


def _compare(op: str, left, right) -> bool:
    comparable = (_is_number(left) and _is_number(right)) or (
        isinstance(left, str) and isinstance(right, str))
    if not comparable:
        raise ConditionRuntimeError(
            f"Cannot compare {_type_name(left)} {op} {_type_name(right)}")
    if op == '<':
        return left < right
    if op == '<=':
        return left <= right
    if op == '>':
        return left > right
    return left >= right


def _binary(op: str, left, right):
    if op == '===':
        return _strict_equals(left, right)
    if op == '!==':
        return not _strict_equals(left, right)
    if op == '==':
        return _loose_equals(left, right)
    if op == '!=':
        return not _loose_equals(left, right)
    if op in ('<', '<=', '>', '>='):
        return _compare(op, left, right)
    if op == 'in':
        if not isinstance(right, Mapping) or not isinstance(left, str):
            raise ConditionRuntimeError("'in' expects a string key and an object")
        return left in right
    return _arithmetic(op, left, right)


class _Interpreter:
    """Walks a parsed program with only ``attributes`` in scope."""

    def __init__(self, attributes, max_steps: int = DEFAULT_MAX_STEPS):
        self._attributes = attributes
        self._scopes = [{}]
        self._steps = 0
        self._max_steps = max_steps

    def _tick(self):
        self._steps += 1
        if self._steps > self._max_steps:
            raise ConditionRuntimeError("Evaluation step budget exceeded")

    def run(self, program: List[tuple]):
        for statement in program:
            returned, value = self._execute(statement)
            if returned:
                return value
        return False

    def _lookup(self, name: str):
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]
        if name == 'attributes':
            return self._attributes
        raise ConditionRuntimeError(f"{name} is not defined")

    def _execute(self, stmt: tuple) -> Tuple[bool, Any]:
        self._tick()
        kind = stmt[0]

        if kind == 'return':
            return True, UNDEFINED if stmt[1] is None else self._evaluate(stmt[1])

        if kind == 'if':
            branch = stmt[2] if _truthy(self._evaluate(stmt[1])) else stmt[3]
            if branch is None:
                return False, None
            return self._execute(branch)

        if kind == 'block':
            self._scopes.append({})
            try:
                for inner in stmt[1]:
                    returned, value = self._execute(inner)
                    if returned:
                        return True, value
            finally:
                self._scopes.pop()
            return False, None

        if kind == 'declare':
            name = stmt[1]
            scope = self._scopes[-1]
            if name == 'attributes' or name in scope:
                raise ConditionRuntimeError(f"Identifier '{name}' has already been declared")
            scope[name] = self._evaluate(stmt[2])
            return False, None

        if kind == 'expr':
            self._evaluate(stmt[1])
        return False, None

    def _evaluate(self, node: tuple):
        self._tick()
        kind = node[0]

        if kind == 'literal':
            return node[1]
        if kind == 'array':
            return [self._evaluate(element) for element in node[1]]
        if kind == 'name':
            return self._lookup(node[1])
        if kind == 'member':
            return _get_member(self._evaluate(node[1]), self._evaluate(node[2]))
        if kind == 'call':
            target = self._evaluate(node[1])
            return _call_method(target, node[2], [self._evaluate(arg) for arg in node[3]])
        if kind == 'logical':
            left = self._evaluate(node[2])
            if node[1] == '&&':
                return self._evaluate(node[3]) if _truthy(left) else left
            return left if _truthy(left) else self._evaluate(node[3])
        if kind == 'conditional':
            return self._evaluate(node[2] if _truthy(self._evaluate(node[1])) else node[3])
        if kind == 'unary':
            operand = self._evaluate(node[2])
            if node[1] == '!':
                return not _truthy(operand)
            if not _is_number(operand):
                raise ConditionRuntimeError(f"Unary '{node[1]}' expects a number")
            return -operand if node[1] == '-' else operand
        if kind == 'binary':
            return _binary(node[1], self._evaluate(node[2]), self._evaluate(node[3]))

        raise ConditionRuntimeError(f"Unsupported node: {kind}")


def _contains_return(statements) -> bool:
    for stmt in statements:
        kind = stmt[0]
        if kind == 'return':
            return True
        if kind == 'block' and _contains_return(stmt[1]):
            return True
        if kind == 'if' and _contains_return([s for s in stmt[2:] if s is not None]):
            return True
    return False


# ===================== API =====================

def evaluate_condition(expression: str, attributes: Mapping[str, Any],
                       max_steps: int = DEFAULT_MAX_STEPS,
                       max_length: int = DEFAULT_MAX_LENGTH) -> bool:
    """
    Évalue un code de condition contre un ensemble d'attributs.

    Args:
        expression: Condition source stored on the ConditionCode
        attributes: Request attribute bag, bound as ``attributes``
        max_steps: Evaluation step budget
        max_length: Maximum accepted source length

    Returns:
        True only when the condition returns boolean true; False on any
        error, on a missing return and on a non-boolean result
    """
    if not isinstance(expression, str) or not expression.strip():
        return False

    try:
        program = parse_condition(expression, max_length)
        result = _Interpreter(attributes, max_steps).run(program)
    except ConditionError as e:
        logger.debug(f"Condition evaluated to false: {e}")
        return False
    except Exception as e:
        # RecursionError on deeply nested input, or anything unforeseen
        logger.warning(f"Unexpected error in condition evaluation: {type(e).__name__}: {e}")
        return False

    if not isinstance(result, bool):
        logger.debug(f"Condition returned {_type_name(result)} instead of boolean, treated as false")
        return False
    return result


def validate_condition(expression: str,
                       max_length: int = DEFAULT_MAX_LENGTH) -> Tuple[bool, Optional[str]]:
    """Check that a condition parses and can return a value."""
    if not isinstance(expression, str) or not expression.strip():
        return False, "Condition is empty"
    try:
        program = parse_condition(expression, max_length)
    except ConditionError as e:
        return False, str(e)
    except RecursionError:
        return False, "Condition is nested too deeply"
    if not _contains_return(program):
        return False, "Condition has no return statement and always evaluates to false"
    return True, None
