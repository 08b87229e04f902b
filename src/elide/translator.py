"""Predicate text → Z3 constraint translator.

Bugs here can make the Z3 plugin report unsound proofs. The module is kept
small and should be read, reviewed and tested with care.

Accepted input (after rewriting ``&&``, ``||``, ``!``, ``===``, ``!==``):
  - Arithmetic: +, -, *, /, % (integers only), unary minus
  - Comparisons: <, <=, >, >=, ==, != (chained)
  - Boolean: and, or, not, true/false
  - Builtins: min, max, abs, len
  - Attribute access, flattened: ``p.x`` becomes the variable ``p_x``

Unsupported (raises TranslationError):
  - Subscripts, lambdas, comprehensions, string constants, unknown calls
"""

from __future__ import annotations

import ast
import re
from typing import Any

import z3


class TranslationError(Exception):
    """Raised when predicate text uses constructs outside the supported subset."""


_NOT = re.compile(r"!(?!=)")


def to_python(text: str) -> str:
    """Rewrite C-style boolean operators into Python syntax."""
    text = text.replace("!==", "!=").replace("===", "==")
    text = text.replace("&&", " and ").replace("||", " or ")
    text = _NOT.sub(" not ", text)
    return text.replace("$", "_S_")


class PredicateTranslator:
    """Translates predicate text into Z3 expressions over one context.

    Every free variable becomes a Z3 ``Real``. ``len(x)`` becomes a
    non-negative ``Int`` named ``len_x``; its side condition is collected in
    :attr:`constraints`.

    Args:
        ctx: The Z3 context to build expressions in; a fresh one per proof
            keeps concurrent proofs independent.
    """

    def __init__(self, ctx: z3.Context | None = None) -> None:
        self.ctx = ctx if ctx is not None else z3.Context()
        self.variables: dict[str, Any] = {}
        self.constraints: list[Any] = []
        self._builtins = {
            "min": self._min,
            "max": self._max,
            "abs": self._abs,
        }

    def translate(self, text: str) -> Any:
        """Translate one predicate to a Z3 ``BoolRef``.

        Raises:
            TranslationError: If the text does not parse or is not boolean.
        """
        try:
            tree = ast.parse(to_python(text).strip(), mode="eval")
        except SyntaxError as e:
            raise TranslationError(f"Cannot parse predicate {text!r}: {e.msg}") from e
        except (ValueError, RecursionError, MemoryError) as e:
            raise TranslationError(f"Cannot parse predicate {text!r}: {type(e).__name__}") from e
        expr = self._expr(tree.body)
        if not z3.is_bool(expr):
            raise TranslationError(f"Predicate {text!r} is not boolean")
        return expr

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def _expr(self, node: ast.expr) -> Any:
        if isinstance(node, ast.Constant):
            return self._constant(node.value)

        if isinstance(node, ast.Name):
            if node.id in ("True", "true"):
                return z3.BoolVal(True, self.ctx)
            if node.id in ("False", "false"):
                return z3.BoolVal(False, self.ctx)
            return self._var(node.id)

        if isinstance(node, ast.Attribute):
            return self._var(self._flatten(node))

        if isinstance(node, ast.BinOp):
            left = self._expr(node.left)
            right = self._expr(node.right)
            return self._binop(node.op, left, right)

        if isinstance(node, ast.UnaryOp):
            return self._unaryop(node.op, self._expr(node.operand))

        if isinstance(node, ast.BoolOp):
            values = [self._bool(self._expr(v)) for v in node.values]
            if isinstance(node.op, ast.And):
                return z3.And(*values)
            return z3.Or(*values)

        if isinstance(node, ast.Compare):
            return self._compare(node)

        if isinstance(node, ast.Call):
            return self._call(node)

        raise TranslationError(f"Unsupported expression: {type(node).__name__}")

    def _constant(self, value: Any) -> Any:
        if isinstance(value, bool):
            return z3.BoolVal(value, self.ctx)
        if isinstance(value, int):
            return z3.IntVal(value, self.ctx)
        if isinstance(value, float):
            return z3.RealVal(str(value), self.ctx)
        raise TranslationError(f"Unsupported constant type: {type(value).__name__}")

    def _var(self, name: str) -> Any:
        if name not in self.variables:
            self.variables[name] = z3.Real(name, self.ctx)
        return self.variables[name]

    def _flatten(self, node: ast.expr) -> str:
        if isinstance(node, ast.Name):
            return node.id
        if isinstance(node, ast.Attribute):
            return f"{self._flatten(node.value)}_{node.attr}"
        raise TranslationError(f"Unsupported attribute base: {type(node).__name__}")

    def _bool(self, expr: Any) -> Any:
        if not z3.is_bool(expr):
            raise TranslationError(f"Expected a boolean operand, got {expr}")
        return expr

    def _binop(self, op: ast.operator, left: Any, right: Any) -> Any:
        left, right = self._coerce(left, right)
        if isinstance(op, ast.Add):
            return left + right
        if isinstance(op, ast.Sub):
            return left - right
        if isinstance(op, ast.Mult):
            return left * right
        if isinstance(op, ast.Div):
            if left.sort() == z3.IntSort(self.ctx):
                left, right = z3.ToReal(left), z3.ToReal(right)
            return left / right
        if isinstance(op, ast.Mod):
            if left.sort() == z3.IntSort(self.ctx):
                return left % right
            raise TranslationError("Modulo only supported for integers")
        raise TranslationError(f"Unsupported operator: {type(op).__name__}")

    def _unaryop(self, op: ast.unaryop, operand: Any) -> Any:
        if isinstance(op, ast.USub):
            return -operand
        if isinstance(op, ast.UAdd):
            return operand
        if isinstance(op, ast.Not):
            return z3.Not(self._bool(operand), self.ctx)
        raise TranslationError(f"Unsupported unary op: {type(op).__name__}")

    def _compare(self, node: ast.Compare) -> Any:
        """Translate comparisons, including chained (a < b < c)."""
        left = self._expr(node.left)
        parts: list[Any] = []
        for op, comp_node in zip(node.ops, node.comparators, strict=False):
            right = self._expr(comp_node)
            lc, rc = self._coerce(left, right)
            if isinstance(op, ast.Lt):
                parts.append(lc < rc)
            elif isinstance(op, ast.LtE):
                parts.append(lc <= rc)
            elif isinstance(op, ast.Gt):
                parts.append(lc > rc)
            elif isinstance(op, ast.GtE):
                parts.append(lc >= rc)
            elif isinstance(op, ast.Eq):
                parts.append(lc == rc)
            elif isinstance(op, ast.NotEq):
                parts.append(lc != rc)
            else:
                raise TranslationError(f"Unsupported comparison: {type(op).__name__}")
            left = right  # chaining
        if len(parts) == 1:
            return parts[0]
        return z3.And(*parts)

    def _call(self, node: ast.Call) -> Any:
        if not isinstance(node.func, ast.Name) or node.keywords:
            raise TranslationError(f"Only simple function calls supported: {ast.dump(node.func)}")
        fname = node.func.id
        if fname == "len":
            if len(node.args) != 1:
                raise TranslationError("len() takes exactly one argument")
            name = f"len_{self._flatten(node.args[0])}"
            if name not in self.variables:
                var = z3.Int(name, self.ctx)
                self.variables[name] = var
                self.constraints.append(var >= 0)
            return self.variables[name]
        if fname not in self._builtins:
            raise TranslationError(f"Unknown function '{fname}'")
        args = [self._expr(a) for a in node.args]
        if not args:
            raise TranslationError(f"{fname}() needs at least one argument")
        return self._builtins[fname](*args)

    # ------------------------------------------------------------------
    # Built-in functions
    # ------------------------------------------------------------------

    def _min(self, *args: Any) -> Any:
        out = args[0]
        for b in args[1:]:
            a, b = self._coerce(out, b)
            out = z3.If(a <= b, a, b, self.ctx)
        return out

    def _max(self, *args: Any) -> Any:
        out = args[0]
        for b in args[1:]:
            a, b = self._coerce(out, b)
            out = z3.If(a >= b, a, b, self.ctx)
        return out

    def _abs(self, *args: Any) -> Any:
        if len(args) != 1:
            raise TranslationError("abs() takes exactly one argument")
        x = args[0]
        return z3.If(x >= 0, x, -x, self.ctx)

    # ------------------------------------------------------------------
    # Type coercion
    # ------------------------------------------------------------------

    def _coerce(self, a: Any, b: Any) -> tuple[Any, Any]:
        """Promote operands to compatible Z3 sorts (Int → Real)."""
        int_sort, real_sort = z3.IntSort(self.ctx), z3.RealSort(self.ctx)
        if a.sort() == b.sort():
            return a, b
        if a.sort() == int_sort and b.sort() == real_sort:
            return z3.ToReal(a), b
        if a.sort() == real_sort and b.sort() == int_sort:
            return a, z3.ToReal(b)
        raise TranslationError(f"Cannot coerce sorts: {a.sort()} and {b.sort()}")
