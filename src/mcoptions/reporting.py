r"""
Presentation writers.

This module provides:

Functions
    :func:`format_report` — console text for one run
    :func:`report_rows` — the same content as ``(label, value, unit)`` rows
    :func:`write_text_report` — plain-text file for one run
    :func:`write_csv_report` — CSV file for one run
    :func:`write_reports` — one file per run, labelled ``A``, ``B``, ``C``, ...

Every report has three sections: model parameters (engine, scheme, payoff),
results and statistics, and input parameters. ``NSteps`` is listed only when
non-zero and a barrier cap only when its magnitude exceeds ``0.1``.
"""

from __future__ import annotations

import csv
import logging
import string
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Union

if TYPE_CHECKING:
    from .core import JobOutcome, SimulationResult, StatisticsRecord

logger = logging.getLogger(__name__)

__all__ = [
    "REPORT_BASENAME",
    "format_report",
    "report_rows",
    "write_text_report",
    "write_csv_report",
    "write_reports",
    "file_label",
]

REPORT_BASENAME = "Monte Carlo Option Pricing"

_CAP_THRESHOLD = 0.1

PathLike = Union[str, Path]
Row = tuple[str, str, str]


def _num(x: float) -> str:
    return f"{x:.6f}"


def report_rows(result: "SimulationResult", stats: "StatisticsRecord") -> list[tuple[str, list[Row]]]:
    r"""
    Report content as ``[(section title, [(label, value, unit), ...]), ...]``.

    Shared by the text and CSV writers so both carry the same fields.
    """
    c = result.contract
    model = [
        ("1. RNG variate", result.engine_name, ""),
        ("2. FDM Scheme", result.scheme_name, ""),
        ("3. Underlying derivative", result.payoff_name, ""),
    ]
    results = [
        ("MCS Option Price", _num(result.price), "[$]"),
        ("Mean Stock Price", _num(stats.mean_asset), "[$]"),
        ("Max Stock Price", _num(stats.max_asset), "[$]"),
        ("Min Stock Price", _num(stats.min_asset), "[$]"),
        ("Standard Deviation", _num(stats.std), ""),
        ("Standard Error", _num(stats.standard_error), ""),
        ("Exact Price", _num(stats.exact_price), "[$]"),
        ("Decision", "true" if stats.decision else "false", ""),
        ("Elapsed time of simulation", f"{stats.elapsed_time:.12g}", "seconds"),
    ]
    inputs = [
        ("Rate of Return", f"{c.rate:g}", "[%]"),
        ("Strike Price", f"{c.strike:g}", "[$]"),
        ("Expiry Time", f"{c.expiry:g}", "[years]"),
        ("Stock Price", f"{c.spot:g}", "[$]"),
        ("Volatility", f"{c.volatility:g}", "[%]"),
        ("NSIM", str(c.n_simulations), ""),
    ]
    if result.n_steps != 0:
        inputs.append(("NSteps", str(result.n_steps), ""))
    if abs(result.upper_cap) > _CAP_THRESHOLD:
        inputs.append(("Option Upper Cap", f"{result.upper_cap:g}", ""))
    if abs(result.lower_cap) > _CAP_THRESHOLD:
        inputs.append(("Option Lower Cap", f"{result.lower_cap:g}", ""))
    return [
        ("Model Parameters", model),
        ("Simulation Results and Statistics", results),
        ("Simulation input parameters", inputs),
    ]


def format_report(result: "SimulationResult", stats: "StatisticsRecord") -> str:
    r"""
    Human-readable report for one run.

    Returns
    -------
    str
        Multiline text, three titled sections between banner lines.
    """
    lines = ["*" * 26 + " OUTPUT " + "*" * 26, ""]
    for title, rows in report_rows(result, stats):
        lines.append(f"*** {title} ***")
        lines.append("")
        width = max(len(label) for label, _, _ in rows) + 2
        for label, value, unit in rows:
            lines.append(f"{label + ':':<{width}}{value}{'  ' + unit if unit else ''}")
        lines.append("")
    lines.append("*" * 60)
    return "\n".join(lines)


def write_text_report(path: PathLike, result: "SimulationResult", stats: "StatisticsRecord") -> Path:
    """Write :func:`format_report` to ``path`` and return the path."""
    path = Path(path)
    path.write_text(format_report(result, stats) + "\n", encoding="utf-8")
    logger.info("Wrote text report %s", path)
    return path


def write_csv_report(path: PathLike, result: "SimulationResult", stats: "StatisticsRecord") -> Path:
    """
    Write the report as CSV rows ``label, value, unit``.

    Section titles occupy a row of their own, followed by a blank row.
    """
    path = Path(path)
    with path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh)
        for title, rows in report_rows(result, stats):
            writer.writerow([f"*** {title} ***"])
            writer.writerows(rows)
            writer.writerow([])
    logger.info("Wrote CSV report %s", path)
    return path


def file_label(index: int) -> str:
    """
    Spreadsheet-style label: ``0 -> "A"``, ``25 -> "Z"``, ``26 -> "AA"``.

    Examples
    --------
    >>> [file_label(k) for k in (0, 1, 25, 26, 27)]
    ['A', 'B', 'Z', 'AA', 'AB']
    """
    if index < 0:
        raise ValueError("index must be >= 0")
    letters = string.ascii_uppercase
    label = ""
    index += 1
    while index:
        index, rem = divmod(index - 1, 26)
        label = letters[rem] + label
    return label


def write_reports(
    outcomes: Iterable["JobOutcome"],
    directory: PathLike = ".",
    fmt: str = "csv",
) -> list[Path]:
    r"""
    Write one report per successful outcome.

    Files are named ``"Monte Carlo Option Pricing A.csv"``, ``"... B.csv"``
    and so on, in iteration order. Failed outcomes are skipped with a warning.

    Parameters
    ----------
    outcomes : iterable of JobOutcome
        E.g. ``PricingFramework.run_many(...).values()``.
    directory : path, default ``"."``
        Created if missing.
    fmt : {"csv", "txt", "both"}, default ``"csv"``

    Returns
    -------
    list of Path
        Written files.
    """
    if fmt not in ("csv", "txt", "both"):
        raise ValueError(f"fmt must be one of 'csv', 'txt', 'both', got '{fmt}'")
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    written: list[Path] = []
    k = 0
    for outcome in outcomes:
        if not outcome.ok:
            logger.warning("Skipping report for failed job '%s': %s", outcome.name, outcome.error)
            continue
        stem = f"{REPORT_BASENAME} {file_label(k)}"
        if fmt in ("csv", "both"):
            written.append(write_csv_report(directory / f"{stem}.csv", outcome.result, outcome.statistics))
        if fmt in ("txt", "both"):
            written.append(write_text_report(directory / f"{stem}.txt", outcome.result, outcome.statistics))
        k += 1
    return written
