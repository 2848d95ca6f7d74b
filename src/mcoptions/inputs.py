r"""
Input boundary.

Parses raw text into pricing inputs and returns a :class:`ParseOutcome`
instead of raising, so an interactive caller can re-prompt on a bad field.

Menus
-----
======  =====================  ===================  =====================
Choice  Scheme                 Payoff               Engine
======  =====================  ===================  =====================
``1``   GBM                    European Call        Default Random Engine
``2``   Explicit Euler         European Put         Mersenne Twister
``3``   Milstein Method        Asian Call
``4``                          Asian Put
======  =====================  ===================  =====================

Names are accepted as well, case-insensitively, either as display names
(``"Explicit Euler"``) or enum values (``"explicit_euler"``).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Generic, Mapping, Optional, TypeVar

from .contract import OptionContract
from .exceptions import InputParseError, PricingError
from .payoffs import Payoff
from .rng import RandomEngine
from .sde import SchemeKind

__all__ = [
    "ParseOutcome",
    "CONTRACT_FIELDS",
    "parse_float",
    "parse_int",
    "parse_contract",
    "parse_scheme",
    "parse_payoff",
    "parse_engine",
]

T = TypeVar("T")

#: Recognised contract fields; ``n_steps`` may be left blank.
CONTRACT_FIELDS = ("volatility", "rate", "expiry", "spot", "strike", "n_simulations", "n_steps")

_SCHEME_MENU = (SchemeKind.GBM, SchemeKind.EXPLICIT_EULER, SchemeKind.MILSTEIN)
_PAYOFF_MENU = ("European Call", "European Put", "Asian Call", "Asian Put")
_ENGINE_MENU = (RandomEngine.DEFAULT, RandomEngine.MERSENNE_TWISTER)
_SCHEME_ALIASES = {
    "geometric brownian motion": SchemeKind.GBM,
    "euler": SchemeKind.EXPLICIT_EULER,
    "explicit euler method": SchemeKind.EXPLICIT_EULER,
    "milstein": SchemeKind.MILSTEIN,
}


@dataclass(frozen=True)
class ParseOutcome(Generic[T]):
    """A parsed value, or the error explaining why there is none."""

    value: Optional[T] = None
    error: Optional[InputParseError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, field: str, raw: Any, reason: str) -> "ParseOutcome[T]":
        return cls(error=InputParseError(field, raw, reason))


def parse_float(field: str, raw: Any) -> ParseOutcome[float]:
    """
    Parse a finite float.

    Examples
    --------
    >>> parse_float("spot", " 60 ").value
    60.0
    >>> parse_float("spot", "abc").ok
    False
    """
    try:
        value = float(str(raw).strip())
    except ValueError:
        return ParseOutcome.failure(field, raw, "not a number")
    if not math.isfinite(value):
        return ParseOutcome.failure(field, raw, "must be finite")
    return ParseOutcome(value)


def parse_int(field: str, raw: Any) -> ParseOutcome[int]:
    """Parse an integer; underscores and a trailing ``.0`` are accepted."""
    text = str(raw).strip().replace("_", "")
    try:
        return ParseOutcome(int(text))
    except ValueError:
        pass
    try:
        as_float = float(text)
    except ValueError:
        return ParseOutcome.failure(field, raw, "not an integer")
    if not math.isfinite(as_float) or not as_float.is_integer():
        return ParseOutcome.failure(field, raw, "not an integer")
    return ParseOutcome(int(as_float))


def parse_contract(fields: Mapping[str, Any]) -> ParseOutcome[OptionContract]:
    r"""
    Build an :class:`~mcoptions.contract.OptionContract` from raw text fields.

    Parameters
    ----------
    fields : mapping
        Keys from :data:`CONTRACT_FIELDS`. ``n_steps`` is optional; a missing
        or blank value means "no time discretisation".

    Returns
    -------
    ParseOutcome[OptionContract]
        The first failing field is reported; domain errors raised by the
        contract are wrapped, never propagated.

    Examples
    --------
    >>> out = parse_contract({"volatility": "0.3", "rate": "0.08", "expiry": "0.25",
    ...                       "spot": "60", "strike": "65", "n_simulations": "100000"})
    >>> out.ok, out.value.n_steps
    (True, None)
    >>> parse_contract({"volatility": "high"}).error.field
    'volatility'
    """
    values: dict[str, Any] = {}
    for name in ("volatility", "rate", "expiry", "spot", "strike"):
        if name not in fields:
            return ParseOutcome.failure(name, None, "missing")
        parsed = parse_float(name, fields[name])
        if not parsed.ok:
            return ParseOutcome(error=parsed.error)
        values[name] = parsed.value

    if "n_simulations" not in fields:
        return ParseOutcome.failure("n_simulations", None, "missing")
    parsed_n = parse_int("n_simulations", fields["n_simulations"])
    if not parsed_n.ok:
        return ParseOutcome(error=parsed_n.error)
    values["n_simulations"] = parsed_n.value

    raw_steps = fields.get("n_steps")
    if raw_steps is not None and str(raw_steps).strip():
        parsed_steps = parse_int("n_steps", raw_steps)
        if not parsed_steps.ok:
            return ParseOutcome(error=parsed_steps.error)
        values["n_steps"] = parsed_steps.value

    try:
        return ParseOutcome(OptionContract(**values))
    except PricingError as e:
        field = next((f for f in CONTRACT_FIELDS if str(e).startswith(f)), "contract")
        return ParseOutcome.failure(field, fields.get(field), str(e))


def _parse_choice(
    field: str,
    choice: Any,
    menu: tuple,
    by_name: Callable[[str], T],
) -> ParseOutcome[T]:
    text = str(choice).strip()
    if text.isdigit():
        k = int(text)
        if 1 <= k <= len(menu):
            return ParseOutcome(by_name(getattr(menu[k - 1], "value", menu[k - 1])))
        return ParseOutcome.failure(field, choice, f"choose a number from 1 to {len(menu)}")
    try:
        return ParseOutcome(by_name(text))
    except (PricingError, ValueError):
        return ParseOutcome.failure(field, choice, "unknown choice")


def _scheme_by_name(text: str) -> SchemeKind:
    lowered = text.lower()
    for kind in SchemeKind:
        if lowered in (kind.value, kind.display_name.lower()):
            return kind
    if lowered in _SCHEME_ALIASES:
        return _SCHEME_ALIASES[lowered]
    raise ValueError(text)


def _engine_by_name(text: str) -> RandomEngine:
    lowered = text.lower()
    for engine in RandomEngine:
        if lowered in (engine.value, engine.display_name.lower()):
            return engine
    raise ValueError(text)


def parse_scheme(choice: Any) -> ParseOutcome[SchemeKind]:
    """
    Parse a scheme menu choice.

    Examples
    --------
    >>> parse_scheme("2").value is SchemeKind.EXPLICIT_EULER
    True
    >>> parse_scheme("milstein method").value is SchemeKind.MILSTEIN
    True
    """
    return _parse_choice("scheme", choice, _SCHEME_MENU, _scheme_by_name)


def parse_payoff(choice: Any) -> ParseOutcome[Payoff]:
    """
    Parse a payoff menu choice.

    Examples
    --------
    >>> parse_payoff("4").value.name
    'Asian Put'
    """
    return _parse_choice("payoff", choice, _PAYOFF_MENU, Payoff.from_name)


def parse_engine(choice: Any) -> ParseOutcome[RandomEngine]:
    """Parse a random-engine menu choice."""
    return _parse_choice("engine", choice, _ENGINE_MENU, _engine_by_name)
