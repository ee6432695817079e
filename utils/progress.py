from typing import Optional
import logging
from tqdm import tqdm
import time

class ProgressMonitor:
    def __init__(self, total: int, desc: str = "Processing",
                 logger: Optional[logging.Logger] = None,
                 log_every: int = 1, disable: bool = False):
        """Initialize progress monitor with total steps and description"""
        self.logger = logger or logging.getLogger('progress')
        self.pbar = tqdm(total=total, desc=desc, leave=False, disable=disable)
        self.total = total
        self.current = 0
        self.log_every = max(1, log_every)
        self.start_time = time.time()
        self.description = desc

    def update(self, n: int = 1, status: str = ""):
        """Advance by n steps; status is shown on the bar and logged"""
        self.current += n
        self.pbar.update(n)
        if status:
            self.pbar.set_postfix_str(status)

        if self.current % self.log_every == 0:
            elapsed = time.time() - self.start_time
            progress = self.current / self.total if self.total else 1.0
            eta = (elapsed / progress) * (1 - progress) if progress > 0 else 0

            self.logger.info(
                f"{self.description}: {self.current}/{self.total} "
                f"({progress*100:.0f}%) - "
                f"Elapsed: {elapsed:.1f}s - "
                f"ETA: {eta:.1f}s"
                + (f" - {status}" if status else "")
            )

    def close(self, status: str = ""):
        """Close progress bar and log final statistics"""
        self.pbar.close()
        total_time = time.time() - self.start_time
        self.logger.info(
            f"Completed {self.description}: {self.current}/{self.total} steps "
            f"in {total_time:.1f}s" + (f" ({status})" if status else "")
        )
