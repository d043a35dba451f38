"""
JobScheduler: ordering, failure isolation, registration.
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy import inspect

from editorial.app.tasks import JobScheduler, default_scheduler


class TestJobScheduler:
    def test_failing_job_does_not_stop_others(self):
        calls = []
        sched = JobScheduler()
        sched.register("first", lambda: calls.append("first"))
        sched.register("broken", MagicMock(side_effect=RuntimeError("boom")))
        sched.register("last", lambda: calls.append("last"))

        assert sched.run_all() == {"first": True, "broken": False, "last": True}
        assert calls == ["first", "last"]

    def test_duplicate_name(self):
        sched = JobScheduler()
        sched.register("a", lambda: None)
        with pytest.raises(ValueError):
            sched.register("a", lambda: None)

    def test_names_in_order(self):
        sched = JobScheduler()
        for name in ("x", "y", "z"):
            sched.register(name, lambda: None)
        assert sched.names == ["x", "y", "z"]

    def test_empty(self):
        assert JobScheduler().run_all() == {}


class TestDefaultScheduler:
    def test_ensure_schema_job(self, tmp_path):
        from editorial.app.db import make_engine

        eng = make_engine(f"sqlite:///{tmp_path / 'cron.db'}")
        try:
            sched = default_scheduler(eng)
            assert sched.names == ["ensure_schema"]
            assert sched.run_all() == {"ensure_schema": True}
            assert {"users", "sources", "keywords", "sources_keywords"} <= set(inspect(eng).get_table_names())
        finally:
            eng.dispose()
