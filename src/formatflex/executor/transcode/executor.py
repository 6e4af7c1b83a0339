"""Execution orchestrator for one conversion run.

This module implements ConversionOrchestrator, which drives a conversion
through its states::

    IDLE -> PROBING -> PLANNING -> ENCODING(1) -> DONE
                                        |-> ENCODING(2, software) -> DONE | FAILED
                                        |-> FAILED
    (any state) -> CANCELLED

The second attempt only happens when the first failed, was not cancelled,
and the retry predicate attributes the failure to hardware acceleration.
The retry builds a fresh plan from a copy of the options with hardware,
turbo and two-pass turned off.
"""

from __future__ import annotations

import dataclasses
import logging
import tempfile
import threading
import uuid
from pathlib import Path
from typing import Any

from formatflex.core.formatting import format_progress_line, summarize_failure
from formatflex.domain.models import MediaProfile
from formatflex.domain.options import ConversionOptions
from formatflex.exceptions import (
    ConversionError,
    EncodeFailure,
    HardwareEncodeFailure,
    OutputValidationFailure,
    PlanningImpossible,
    SoftwareEncodeFailure,
    UserCancelled,
)
from formatflex.executor.events import (
    ConversionCompleted,
    EventChannel,
    ProgressUpdated,
    StateChanged,
)
from formatflex.executor.ffmpeg_base import (
    DEFAULT_CANCEL_GRACE,
    DEFAULT_TAIL_LINES,
    FFmpegProcessRunner,
    ProcessResult,
    ProcessRunner,
)
from formatflex.executor.ffmpeg_utils import (
    artifact_problem,
    discard,
    make_work_dir,
    remove_work_dir,
    temp_artifact_path,
)
from formatflex.executor.interface import (
    FilePlacement,
    LifecycleHooks,
    MoveFilePlacement,
    NullLifecycleHooks,
)
from formatflex.executor.log_buffer import LogRingBuffer
from formatflex.executor.progress import ProgressTracker
from formatflex.introspector.interface import MediaProber
from formatflex.logging.context import conversion_context, set_attempt
from formatflex.tools.ffmpeg_progress import FFmpegProgress
from formatflex.tools.models import CapabilitySet

from .command import build_ffmpeg_command, build_ffmpeg_command_pass1
from .planner import build_plan
from .retry import RetryPredicate, SignatureRetryPredicate
from .types import (
    AttemptResult,
    ConversionOutcome,
    ConversionState,
    EncodePlan,
    OutcomeStatus,
    TwoPassContext,
)

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2
PASSLOG_NAME = "formatflex_passlog"


class ConversionOrchestrator:
    """Runs conversions: probe, plan, encode, retry, validate, place.

    One orchestrator runs one conversion at a time. ``run`` blocks until the
    run ends; other threads may call ``cancel`` and read ``state``,
    ``attempt`` and ``current_output`` meanwhile, or consume the event
    channel.
    """

    def __init__(
        self,
        prober: MediaProber,
        capabilities: CapabilitySet,
        ffmpeg_path: Path,
        runner: ProcessRunner | None = None,
        events: EventChannel | None = None,
        log_buffer: LogRingBuffer | None = None,
        placement: FilePlacement | None = None,
        hooks: LifecycleHooks | None = None,
        retry_predicate: RetryPredicate | None = None,
        temp_directory: Path | None = None,
        diagnostic_tail_lines: int = DEFAULT_TAIL_LINES,
        cancel_grace: float = DEFAULT_CANCEL_GRACE,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            prober: Media prober for the input (never raises).
            capabilities: Engine capabilities, detected once per process.
            ffmpeg_path: Path to the ffmpeg executable.
            runner: Process runner; defaults to FFmpegProcessRunner.
            events: Channel receiving state, progress and completion events.
            log_buffer: Buffer receiving every engine diagnostic line.
            placement: Collaborator moving the finished artifact into place.
            hooks: Keep-alive and visible progress collaborator.
            retry_predicate: Decides whether a failure is worth a software
                retry; defaults to SignatureRetryPredicate().
            temp_directory: Parent for run-scoped work directories
                (None = system temp directory).
            diagnostic_tail_lines: Diagnostic lines kept in outcomes.
            cancel_grace: Seconds between terminate and kill on cancel.
        """
        self._prober = prober
        self._capabilities = capabilities
        self._ffmpeg_path = ffmpeg_path
        self.log_buffer = log_buffer if log_buffer is not None else LogRingBuffer()
        self._runner: ProcessRunner = runner or FFmpegProcessRunner(
            log_buffer=self.log_buffer,
            cancel_grace=cancel_grace,
            tail_lines=diagnostic_tail_lines,
        )
        self.events = events if events is not None else EventChannel()
        self._placement: FilePlacement = placement or MoveFilePlacement()
        self._hooks: LifecycleHooks = hooks or NullLifecycleHooks()
        self._retry_predicate: RetryPredicate = (
            retry_predicate or SignatureRetryPredicate()
        )
        self._temp_directory = temp_directory
        self._diagnostic_tail_lines = diagnostic_tail_lines

        self._cancel_event = threading.Event()
        self._lock = threading.Lock()
        self._state = ConversionState.IDLE
        self._attempt = 0
        self._current_output: Path | None = None
        self._keep_alive = False
        self._invocations = 0

    # -------------------------------------------------------------------------
    # Shared state (written only by the running conversion)
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ConversionState:
        """Current state of the run."""
        with self._lock:
            return self._state

    @property
    def attempt(self) -> int:
        """Current execution attempt (0 before encoding starts)."""
        with self._lock:
            return self._attempt

    @property
    def current_output(self) -> Path | None:
        """Temporary output currently being written, if any."""
        with self._lock:
            return self._current_output

    def cancel(self) -> None:
        """Request cancellation of the running conversion.

        Safe to call from any thread. The running engine process is
        terminated gracefully, then killed after the grace window.
        """
        logger.info("Cancellation requested")
        self._cancel_event.set()

    @property
    def cancel_requested(self) -> bool:
        """True if cancel() was called during the current run."""
        return self._cancel_event.is_set()

    def _set_state(self, state: ConversionState, attempt: int | None = None) -> None:
        with self._lock:
            self._state = state
            if attempt is not None:
                self._attempt = attempt
            current_attempt = self._attempt
        logger.debug("State -> %s", state.value, extra={"state": state.value})
        self.events.publish(StateChanged(state=state, attempt=current_attempt))

    def _set_current_output(self, path: Path | None) -> None:
        with self._lock:
            self._current_output = path

    # -------------------------------------------------------------------------
    # Lifecycle collaborator calls (fire-and-forget)
    # -------------------------------------------------------------------------

    def _call_hook(self, name: str, *args: Any) -> None:
        try:
            getattr(self._hooks, name)(*args)
        except Exception as e:
            logger.warning("Lifecycle hook %s failed: %s", name, e)

    def _start_keep_alive(self, input_path: Path) -> None:
        if not self._keep_alive:
            self._keep_alive = True
            self._call_hook("start_keep_alive", f"Converting {input_path.name}")

    def _stop_keep_alive(self) -> None:
        if self._keep_alive:
            self._keep_alive = False
            self._call_hook("stop_keep_alive")

    # -------------------------------------------------------------------------
    # Public entry points
    # -------------------------------------------------------------------------

    def run(
        self,
        input_path: Path,
        output_path: Path,
        options: ConversionOptions,
    ) -> ConversionOutcome:
        """Convert one input file.

        Args:
            input_path: Source file.
            output_path: Requested destination.
            options: Target configuration; a snapshot is taken, so later
                edits by the caller do not affect the run.

        Returns:
            ConversionOutcome; conversion errors are reported in the outcome,
            never raised.
        """
        self._cancel_event.clear()
        with self._lock:
            self._attempt = 0
            self._current_output = None
        self._invocations = 0
        run_id = uuid.uuid4().hex[:6]

        with conversion_context(run_id):
            try:
                outcome = self._run(input_path, output_path, options.snapshot())
            except Exception as e:
                logger.exception("Conversion aborted by an unexpected error")
                self._set_state(ConversionState.FAILED)
                self._complete(
                    ConversionOutcome(
                        status=OutcomeStatus.FAILED,
                        summary=str(e),
                        attempts=self.attempt,
                        invocations=self._invocations,
                    )
                )
                raise
            outcome = dataclasses.replace(outcome, invocations=self._invocations)
            self._complete(outcome)
            return outcome

    def dry_run(
        self,
        input_path: Path,
        output_path: Path,
        options: ConversionOptions,
    ) -> dict[str, Any]:
        """Probe and plan without running the engine.

        Returns:
            Dictionary with the profile summary, the plan and the commands
            the first attempt would run.

        Raises:
            PlanningImpossible: If no plan can be built.
        """
        snapshot = options.snapshot()
        profile = self._prober.probe(input_path)
        plan = self._plan_first_attempt(profile, snapshot)
        if snapshot.two_pass and plan.supports_two_pass:
            ctx = TwoPassContext(passlogfile=Path(tempfile.gettempdir()) / PASSLOG_NAME)
            commands = [
                build_ffmpeg_command_pass1(plan, self._ffmpeg_path, input_path, ctx)
            ]
            ctx.current_pass = 2
            commands.append(
                build_ffmpeg_command(
                    plan, self._ffmpeg_path, input_path, output_path, ctx
                )
            )
        else:
            commands = [
                build_ffmpeg_command(plan, self._ffmpeg_path, input_path, output_path)
            ]
        return {
            "input": str(input_path),
            "output": str(output_path),
            "probe_succeeded": profile.probe_succeeded,
            "duration_ms": profile.duration_ms,
            "plan": plan.describe(),
            "commands": commands,
        }

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def _plan_first_attempt(
        self, profile: MediaProfile, options: ConversionOptions
    ) -> EncodePlan:
        # Two-pass statistics only exist for software encoders
        return build_plan(
            profile,
            options,
            self._capabilities,
            force_software_encode=options.two_pass,
        )

    def _run(
        self,
        input_path: Path,
        output_path: Path,
        options: ConversionOptions,
    ) -> ConversionOutcome:
        logger.info(
            "Starting conversion: %s -> %s",
            input_path,
            output_path,
            extra={"input_path": str(input_path), "output_path": str(output_path)},
        )

        self._set_state(ConversionState.PROBING)
        profile = self._prober.probe(input_path)
        if self._cancel_event.is_set():
            return self._cancelled_outcome(attempts=0)

        self._set_state(ConversionState.PLANNING)
        try:
            plan = self._plan_first_attempt(profile, options)
        except PlanningImpossible as e:
            logger.error("Planning failed: %s", e)
            self._set_state(ConversionState.FAILED)
            return ConversionOutcome(
                status=OutcomeStatus.FAILED, error=e, summary=str(e)
            )
        for warning in plan.warnings:
            logger.warning(warning)
        if self._cancel_event.is_set():
            return self._cancelled_outcome(attempts=0, plan=plan)

        work_dir = make_work_dir(self._temp_directory)
        temp_output = temp_artifact_path(
            output_path, work_dir, extension=plan.container.extension
        )
        try:
            return self._execute(
                input_path, output_path, temp_output, work_dir, profile, plan, options
            )
        finally:
            self._stop_keep_alive()
            self._set_current_output(None)
            discard(temp_output)
            remove_work_dir(work_dir)

    def _execute(
        self,
        input_path: Path,
        output_path: Path,
        temp_output: Path,
        work_dir: Path,
        profile: MediaProfile,
        plan: EncodePlan,
        options: ConversionOptions,
    ) -> ConversionOutcome:
        attempt = 1
        software_fallback = False
        while True:
            try:
                result = self._execute_attempt(
                    attempt, plan, options, profile, input_path, temp_output, work_dir
                )
            except SoftwareEncodeFailure as e:
                return self._failed_outcome(e, attempt, plan, software_fallback)

            if result.cancelled:
                return self._cancelled_outcome(
                    attempts=attempt,
                    plan=plan,
                    tail=result.tail,
                    software_fallback=software_fallback,
                )

            if result.exited_cleanly:
                return self._finalize(
                    result, temp_output, output_path, attempt, plan, software_fallback
                )

            failure = self._classify_failure(result, attempt)
            if isinstance(failure, HardwareEncodeFailure) and attempt < MAX_ATTEMPTS:
                logger.warning(
                    "Attempt %d failed in a way attributed to hardware "
                    "acceleration; retrying in software",
                    attempt,
                    extra={"return_code": result.return_code},
                )
                options = options.snapshot(
                    use_hw_encoder=False, turbo=False, two_pass=False
                )
                plan = build_plan(
                    profile,
                    options,
                    self._capabilities,
                    force_software_decode=True,
                    force_software_encode=True,
                )
                discard(temp_output)
                attempt += 1
                software_fallback = True
                continue

            return self._failed_outcome(
                failure, attempt, plan, software_fallback, tail=result.tail
            )

    def _execute_attempt(
        self,
        attempt: int,
        plan: EncodePlan,
        options: ConversionOptions,
        profile: MediaProfile,
        input_path: Path,
        temp_output: Path,
        work_dir: Path,
    ) -> AttemptResult:
        """Run one execution attempt (one or two engine invocations)."""
        set_attempt(attempt)
        self._set_state(ConversionState.ENCODING, attempt=attempt)
        self._start_keep_alive(input_path)
        self._set_current_output(temp_output)

        two_pass = options.two_pass and plan.supports_two_pass
        if options.two_pass and not two_pass:
            logger.info("Two-pass skipped: video is not re-encoded in software")

        total_ms = profile.duration_ms
        tracker = ProgressTracker(total_ms * 2 if two_pass and total_ms else total_ms)

        if not two_pass:
            cmd = build_ffmpeg_command(plan, self._ffmpeg_path, input_path, temp_output)
            result = self._invoke(cmd, attempt, tracker, offset_ms=0, label="encode")
            return self._attempt_result(result, invocations=1, tracker=tracker)

        two_pass_ctx = TwoPassContext(passlogfile=work_dir / PASSLOG_NAME)
        try:
            cmd1 = build_ffmpeg_command_pass1(
                plan, self._ffmpeg_path, input_path, two_pass_ctx
            )
            first = self._invoke(cmd1, attempt, tracker, offset_ms=0, label="pass 1")
            if first.cancelled or first.return_code != 0:
                return self._attempt_result(first, invocations=1, tracker=None)

            two_pass_ctx.current_pass = 2
            cmd2 = build_ffmpeg_command(
                plan, self._ffmpeg_path, input_path, temp_output, two_pass_ctx
            )
            second = self._invoke(
                cmd2, attempt, tracker, offset_ms=total_ms or 0, label="pass 2"
            )
            return self._attempt_result(second, invocations=2, tracker=tracker)
        finally:
            two_pass_ctx.cleanup()

    def _invoke(
        self,
        cmd: list[str],
        attempt: int,
        tracker: ProgressTracker,
        offset_ms: int,
        label: str,
    ) -> ProcessResult:
        """Run one engine invocation, translating spawn errors."""
        self._invocations += 1
        logger.info(
            "Starting %s (attempt %d)",
            label,
            attempt,
            extra={"command": " ".join(cmd), "attempt_label": label},
        )

        def on_progress(progress: FFmpegProgress) -> None:
            elapsed = progress.out_time_ms
            snapshot = tracker.update(
                elapsed + offset_ms if elapsed is not None else None,
                speed=progress.speed,
                frame=progress.frame,
            )
            self.events.publish(ProgressUpdated(attempt=attempt, snapshot=snapshot))
            self._call_hook("update_progress_text", format_progress_line(snapshot))

        try:
            result = self._runner.run(cmd, self._cancel_event, on_progress)
        except OSError as e:
            logger.error("Could not start ffmpeg: %s", e)
            raise SoftwareEncodeFailure(
                f"Could not start ffmpeg: {e}", diagnostic_tail=(str(e),)
            ) from e

        logger.info(
            "%s finished with exit code %s",
            label.capitalize(),
            result.return_code,
            extra={"return_code": result.return_code, "cancelled": result.cancelled},
        )
        return result

    def _attempt_result(
        self,
        result: ProcessResult,
        invocations: int,
        tracker: ProgressTracker | None,
    ) -> AttemptResult:
        if tracker is not None and result.return_code == 0 and not result.cancelled:
            snapshot = tracker.finish()
            self.events.publish(
                ProgressUpdated(attempt=self.attempt, snapshot=snapshot)
            )
            self._call_hook("update_progress_text", format_progress_line(snapshot))
        return AttemptResult(
            return_code=result.return_code,
            cancelled=result.cancelled,
            tail=result.diagnostic_lines[-self._diagnostic_tail_lines :],
            invocations=invocations,
            saw_end=result.saw_end,
        )

    def _classify_failure(self, result: AttemptResult, attempt: int) -> EncodeFailure:
        message = f"ffmpeg failed on attempt {attempt} (exit code {result.return_code})"
        if attempt < MAX_ATTEMPTS and self._retry_predicate.should_retry(
            result.return_code, result.tail
        ):
            return HardwareEncodeFailure(message, result.return_code, result.tail)
        return SoftwareEncodeFailure(message, result.return_code, result.tail)

    def _finalize(
        self,
        result: AttemptResult,
        temp_output: Path,
        output_path: Path,
        attempt: int,
        plan: EncodePlan,
        software_fallback: bool,
    ) -> ConversionOutcome:
        """Validate the artifact and hand it to the placement collaborator."""
        problem = artifact_problem(temp_output)
        if problem is not None:
            logger.error("Output validation failed: %s", problem)
            return self._failed_outcome(
                OutputValidationFailure(problem),
                attempt,
                plan,
                software_fallback,
                tail=result.tail,
                return_code=result.return_code,
            )

        final_path = self._placement.place(temp_output, output_path)
        if final_path is None:
            return self._failed_outcome(
                OutputValidationFailure(f"Could not place output at {output_path}"),
                attempt,
                plan,
                software_fallback,
                tail=result.tail,
                return_code=result.return_code,
            )

        logger.info(
            "Conversion succeeded: %s",
            final_path,
            extra={
                "output_path": str(final_path),
                "attempts": attempt,
                "software_fallback": software_fallback,
            },
        )
        self._set_state(ConversionState.DONE)
        return ConversionOutcome(
            status=OutcomeStatus.SUCCEEDED,
            return_code=result.return_code,
            tail_log="\n".join(result.tail),
            output_path=final_path,
            attempts=attempt,
            software_fallback=software_fallback,
            summary=f"Saved to {final_path}",
            plan=plan,
            warnings=plan.warnings,
        )

    def _failed_outcome(
        self,
        error: ConversionError,
        attempt: int,
        plan: EncodePlan | None,
        software_fallback: bool,
        tail: tuple[str, ...] = (),
        return_code: int | None = None,
    ) -> ConversionOutcome:
        if isinstance(error, EncodeFailure):
            tail = tail or error.diagnostic_tail
            return_code = error.return_code if return_code is None else return_code
        logger.error(
            "Conversion failed: %s",
            error,
            extra={"attempts": attempt, "return_code": return_code},
        )
        self._set_state(ConversionState.FAILED)
        return ConversionOutcome(
            status=OutcomeStatus.FAILED,
            return_code=return_code,
            tail_log="\n".join(tail),
            attempts=attempt,
            software_fallback=software_fallback,
            error=error,
            summary=summarize_failure(tail),
            plan=plan,
            warnings=plan.warnings if plan else (),
        )

    def _cancelled_outcome(
        self,
        attempts: int,
        plan: EncodePlan | None = None,
        tail: tuple[str, ...] = (),
        software_fallback: bool = False,
    ) -> ConversionOutcome:
        logger.info("Conversion cancelled", extra={"attempts": attempts})
        self._set_state(ConversionState.CANCELLED)
        return ConversionOutcome(
            status=OutcomeStatus.CANCELLED,
            tail_log="\n".join(tail),
            attempts=attempts,
            software_fallback=software_fallback,
            error=UserCancelled("Conversion cancelled by user"),
            summary="Conversion cancelled.",
            plan=plan,
        )

    def _complete(self, outcome: ConversionOutcome) -> None:
        self.events.publish(ConversionCompleted(outcome=outcome))
