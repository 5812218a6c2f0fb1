import logging
import random
import time
from collections.abc import Callable, Iterator
from contextlib import ExitStack
from typing import Optional

from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TimeElapsedColumn, MofNCompleteColumn

from .config import RunConfig
from .errors import DataExhaustionError
from .fetch import fetch
from .metrics import StatisticsAggregator, summarize
from .models import DispatchState, Job, MetricsCallback, RequestOutcome
from .pacing import PacingPlan
from .persistence import ResponseSink
from .pool import WorkerPool
from .rendering import render_latency_histogram, render_percentiles, render_statistic_report, render_status_counts
from .sources import SENTINEL_PAYLOAD, JobSource, PayloadCursor
from .transport import RequestsTransport, Transport
from .utils import GracefulKiller


logger = logging.getLogger(__name__)


class RequestDispatcher:
    """
    Reads jobs from the job source, paces their submission and collects
    latency statistics.

    In paced mode jobs go to a pool of `chunk_size` workers; every chunk gets
    a fresh pacing plan and the submitting thread sleeps the planned delay
    after each submission. In sequential mode each request completes before
    the next line is read. Statistics are only read after the pool drained.
    """

    def __init__(
        self,
        config: RunConfig,
        transport: Transport | None = None,
        aggregator: StatisticsAggregator | None = None,
        sink: ResponseSink | None = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
        metrics_callback: MetricsCallback | None = None,
        graceful_killer: GracefulKiller | None = None,
        use_progress_bar: bool = False,
        histogram_bins: int = 20,
    ) -> None:
        self.config = config
        self._owns_transport = transport is None
        self.transport = transport or RequestsTransport()
        self.aggregator = aggregator or StatisticsAggregator(config.success_code)
        self.sink = sink
        self._sleep = sleep
        self.rng = rng or random.Random()
        self.metrics_callback = metrics_callback
        self.graceful_killer = graceful_killer
        self.use_progress_bar = use_progress_bar
        self.histogram_bins = histogram_bins

        # Runtime state
        self.state = DispatchState.IDLE
        self.submitted = 0
        self.lines_read = 0
        self._payload_exhausted = False
        self.progress: Optional[Progress] = None
        self.task_id = None

        logger.info(
            f"Initialized dispatcher: limit={config.limit}, "
            f"mode={'sequential' if config.sequential else 'paced'}, "
            f"chunk_size={config.chunk_size}, time_range={config.time_range}ms, "
            f"min_distance={config.min_distance}ms, timeout={config.timeout}ms"
        )

    # ────────────────────────────────
    # Jobs
    # ────────────────────────────────

    def _next_payload(self, payloads: PayloadCursor) -> str:
        if self._payload_exhausted:
            return SENTINEL_PAYLOAD
        try:
            return payloads.next_payload()
        except DataExhaustionError as e:
            logger.warning(f"{e}; sending {SENTINEL_PAYLOAD!r} from now on")
            self._payload_exhausted = True
            return SENTINEL_PAYLOAD

    def _jobs(self, source: JobSource, payloads: PayloadCursor | None) -> Iterator[Job]:
        for index, url in enumerate(source):
            body = self._next_payload(payloads) if payloads is not None else None
            yield Job(url, body, index)

    def _stopping(self) -> bool:
        return self.graceful_killer is not None and self.graceful_killer.kill_now

    # ────────────────────────────────
    # Fetch Task
    # ────────────────────────────────

    def _execute(self, job: Job) -> RequestOutcome:
        cfg = self.config
        outcome = fetch(
            self.transport,
            job,
            method=cfg.method,
            timeout_ms=cfg.timeout,
            suppress_body=cfg.no_body,
        )
        self.aggregator.add_value(outcome)
        if self.progress is not None and self.task_id is not None:
            self.progress.advance(self.task_id)
        if self.sink is not None and not cfg.no_body and not outcome.failed:
            try:
                self.sink.write(outcome.body)
            except OSError as e:
                logger.warning(f"[#{job.index}] Could not write response body: {e}")
        return outcome

    # ────────────────────────────────
    # Dispatch Modes
    # ────────────────────────────────

    def _run_sequential(self, jobs: Iterator[Job]) -> None:
        for job in jobs:
            self.state = DispatchState.PACING
            self._execute(job)
            self.submitted += 1
            if self._stopping():
                logger.info("Stop requested. No further requests will be sent.")
                break
        self.state = DispatchState.DRAINING

    def _run_paced(self, jobs: Iterator[Job]) -> None:
        cfg = self.config
        plan: PacingPlan | None = None
        pool = WorkerPool(cfg.chunk_size, name="fetch")
        try:
            for job in jobs:
                self.state = DispatchState.PACING
                if job.index % cfg.chunk_size == 0 or plan is None or plan.exhausted:
                    plan = PacingPlan.shape(cfg.time_range, cfg.chunk_size, cfg.min_distance, rng=self.rng)
                pool.submit(self._execute, job)
                self.submitted += 1
                delay_ms = plan.next_delay()
                if delay_ms > 0:
                    self._sleep(delay_ms / 1000.0)
                if self._stopping():
                    logger.info("Stop requested. No further requests will be submitted.")
                    break
        finally:
            self.state = DispatchState.DRAINING
            logger.debug(f"Draining {self.submitted} submitted requests")
            pool.shutdown()

    # ────────────────────────────────
    # Main Runner
    # ────────────────────────────────

    def run(self) -> StatisticsAggregator:
        if self.state is not DispatchState.IDLE:
            raise RuntimeError("a dispatcher can only run once")
        cfg = self.config

        with ExitStack() as stack:
            # Any SetupError surfaces here, before a single request is sent
            source = stack.enter_context(JobSource.open(cfg.input_file, cfg.limit, cfg.prefix))
            payloads = None
            if cfg.method == "POST":
                payloads = PayloadCursor.from_file(cfg.payload_file, repeat=cfg.repeat_payload)
            if self.sink is None and not cfg.no_body:
                self.sink = stack.enter_context(ResponseSink(cfg.output))
            if self._owns_transport:
                stack.callback(self.transport.close)

            if self.use_progress_bar:
                self.progress = Progress(
                    SpinnerColumn(),
                    TextColumn("[progress.description]{task.description}"),
                    BarColumn(),
                    MofNCompleteColumn(),
                    TimeElapsedColumn(),
                )
                self.progress.start()
                stack.callback(self.progress.stop)
                self.task_id = self.progress.add_task("[cyan]Sending...", total=cfg.limit)

            logger.info(f"Starting run against {cfg.input_file}")
            jobs = self._jobs(source, payloads)
            if cfg.sequential:
                self._run_sequential(jobs)
            else:
                self._run_paced(jobs)
            self.lines_read = source.lines_read
            if self.progress is not None and self.task_id is not None:
                # the source may hold fewer lines than the limit
                self.progress.update(self.task_id, total=self.submitted)

        self.state = DispatchState.DONE
        summary = summarize(self.aggregator)
        if self.metrics_callback:
            self.metrics_callback(summary)
        logger.info(
            f"Run completed: {summary['success']} succeeded, {summary['errors']} failed "
            f"out of {self.submitted} submitted | error_rate={summary['error_rate'] * 100:.1f}%"
        )
        return self.aggregator

    def report(self) -> str:
        if self.state is not DispatchState.DONE:
            raise RuntimeError("statistics are only available after the run has drained")
        total, success = self.aggregator.snapshot()
        return "\n\n".join(
            [
                render_statistic_report(total, success),
                render_percentiles(total),
                render_status_counts(self.aggregator.status_counts),
                render_latency_histogram(total.values, self.histogram_bins),
            ]
        )
