"""Convergence driver: sequences edits until a component file is initialized.

Each pass analyzes the current document, binds one operation to that
report's offsets, applies it and discards the report. File-backed runs
persist every step with a whole-file atomic write and re-read the file
before the next analysis, so an interrupted run leaves a valid file.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Callable
from pathlib import Path

from .analyzer import analyze
from .exceptions import ConvergenceError, WriteError
from .logging_config import logger
from .models import (
    AnalysisReport,
    ConvergenceOutcome,
    ConvergenceResult,
    MutationPlan,
    MutationStep,
    SetupTarget,
)
from .mutations import apply_step, next_step, plan

# Block creation, import and call are the longest chain; the rest is headroom.
MAX_PASSES = 6

ConfirmCallback = Callable[[MutationPlan, AnalysisReport], bool]


def read_document(path: Path, missing_ok: bool = False) -> str:
    """Read a file as text, treating a missing file as empty when allowed."""
    path = Path(path)
    if missing_ok and not path.exists():
        return ""
    try:
        # newline="" keeps CRLF files intact
        with path.open(encoding="utf-8", newline="") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise WriteError(path, str(e), action="read") from e


def write_atomic(path: Path, text: str) -> None:
    """Replace a file's contents with a temp file in the same directory.

    Raises:
        WriteError: If the file cannot be written; the original is untouched
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
    except OSError as e:
        raise WriteError(path, str(e)) from e

    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        if path.exists():
            os.chmod(temp_path, path.stat().st_mode & 0o7777)
        os.replace(temp_path, path)
    except OSError as e:
        try:
            os.unlink(temp_path)
        except OSError:
            logger.warning(f"Could not remove temporary file {temp_path}")
        raise WriteError(path, str(e)) from e

    logger.debug(f"Atomic write completed: {path}")


def _run(
    document: str,
    report: AnalysisReport,
    target: SetupTarget,
    commit: Callable[[str], str],
) -> tuple[str, AnalysisReport, list[MutationStep]]:
    """Apply one step per pass until satisfied.

    ``commit`` receives each edited document and returns the text the next
    analysis must run on.
    """
    steps: list[MutationStep] = []
    for _ in range(MAX_PASSES):
        step = next_step(document, report, target)
        if step is None:
            return document, report, steps
        if any(done.operation is step.operation for done in steps):
            # an applied edit was not recognized on re-analysis
            msg = f"{step.operation.value} would be applied twice"
            raise ConvergenceError(
                msg,
                details={"operations": [done.operation.value for done in steps]},
            )
        document = commit(apply_step(document, report, step))
        steps.append(step)
        report = analyze(document, target)

    msg = f"Document did not converge after {MAX_PASSES} edits"
    raise ConvergenceError(
        msg,
        details={"operations": [step.operation.value for step in steps]},
    )


def converge(document: str, target: SetupTarget | None = None) -> ConvergenceResult:
    """Bring a document to the initialized state in memory.

    Args:
        document: Component file text
        target: What to inject; defaults to the svelte-bay setup

    Returns:
        Result holding the converged text and the applied steps
    """
    target = target or SetupTarget()
    report = analyze(document, target)
    if report.is_satisfied:
        return ConvergenceResult(
            outcome=ConvergenceOutcome.ALREADY_SATISFIED,
            original=document,
            document=document,
            final_report=report,
        )

    final, final_report, steps = _run(document, report, target, lambda text: text)
    return ConvergenceResult(
        outcome=ConvergenceOutcome.SATISFIED,
        original=document,
        document=final,
        steps=steps,
        final_report=final_report,
    )


def converge_file(
    path: Path,
    target: SetupTarget | None = None,
    confirm: ConfirmCallback | None = None,
    dry_run: bool = False,
    create: bool = False,
) -> ConvergenceResult:
    """Bring a component file on disk to the initialized state.

    Args:
        path: File to analyze and edit
        target: What to inject; defaults to the svelte-bay setup
        confirm: Called with the predicted plan before the first write;
            returning False cancels the run with nothing written
        dry_run: Compute the result without writing
        create: Treat a missing file as empty and create it

    Returns:
        Convergence result; ``already_satisfied`` runs never touch the file

    Raises:
        WriteError: If the file cannot be read or written
        ConvergenceError: If the edits do not reach a satisfied state; raised
            before anything is written
    """
    path = Path(path)
    target = target or SetupTarget()
    original = read_document(path, missing_ok=create)
    report = analyze(original, target)

    if report.is_satisfied:
        logger.info(f"{path} is already initialized")
        return ConvergenceResult(
            outcome=ConvergenceOutcome.ALREADY_SATISFIED,
            original=original,
            document=original,
            final_report=report,
        )

    predicted = plan(original, report)
    if confirm is not None and not confirm(predicted, report):
        logger.info(f"Setup of {path} declined, nothing written")
        return ConvergenceResult(
            outcome=ConvergenceOutcome.CANCELLED,
            original=original,
            document=original,
            final_report=report,
        )

    # Nothing is written unless the whole sequence converges in memory first.
    rehearsal = converge(original, target)
    if dry_run:
        return rehearsal

    def commit(text: str) -> str:
        write_atomic(path, text)
        logger.info(f"Updated {path}")
        return read_document(path)

    final, final_report, steps = _run(original, report, target, commit)
    return ConvergenceResult(
        outcome=ConvergenceOutcome.SATISFIED,
        original=original,
        document=final,
        steps=steps,
        final_report=final_report,
    )
