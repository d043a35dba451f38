# editorial/app/tasks.py
import logging, time
from functools import partial
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

log = logging.getLogger(__name__)


@dataclass
class Job:
    name: str
    fn: Callable[[], None]


class JobScheduler:
    """
    Named jobs run one after another by an external periodic trigger.

    A failing job is logged and recorded; the remaining jobs still run.
    """

    def __init__(self, jobs: Optional[List[Job]] = None):
        self._jobs: List[Job] = list(jobs or [])

    def register(self, name: str, fn: Callable[[], None]) -> None:
        if any(j.name == name for j in self._jobs):
            raise ValueError(f"job already registered: {name}")
        self._jobs.append(Job(name, fn))

    @property
    def names(self) -> List[str]:
        return [j.name for j in self._jobs]

    def run_all(self) -> Dict[str, bool]:
        results: Dict[str, bool] = {}
        for job in self._jobs:
            t0 = time.monotonic()
            try:
                job.fn()
                results[job.name] = True
                log.info("[tasks] %s ok (%.2fs)", job.name, time.monotonic() - t0)
            except Exception as e:
                results[job.name] = False
                log.exception("[tasks] %s failed: %s", job.name, e)
        return results


def default_scheduler(bind=None) -> JobScheduler:
    from editorial.app.db import init_db

    return JobScheduler([Job("ensure_schema", partial(init_db, bind))])
