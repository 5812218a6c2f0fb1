import logging
import time
import signal

logger = logging.getLogger(__name__)


def now() -> float:
    return time.perf_counter()


class GracefulKiller:
    """
    First SIGINT/SIGTERM sets `kill_now`: the dispatcher stops submitting and
    drains what is in flight. A second one aborts with KeyboardInterrupt.
    Must be created on the main thread.
    """

    def __init__(self):
        self.kill_now = False
        signal.signal(signal.SIGINT, self.exit_gracefully)
        signal.signal(signal.SIGTERM, self.exit_gracefully)

    def exit_gracefully(self, signum, frame):
        if self.kill_now:
            raise KeyboardInterrupt
        logger.warning(f"Received signal {signum}. Draining in-flight requests...")
        self.kill_now = True
