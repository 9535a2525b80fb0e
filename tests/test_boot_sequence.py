"""启动序列测试"""
import os
import time

import pytest

from newsbot.infrastructure.boot_stamp import BootStamp
from newsbot.services.boot_sequence import BootSequence


class TestBootSequence:
    @pytest.mark.asyncio
    async def test_failing_step_does_not_stop_sequence(self, events):
        calls = []

        async def health():
            calls.append("health")
            return {"status": "ok"}

        async def ingest():
            calls.append("ingest")
            raise RuntimeError("scraper down")

        async def publishing():
            calls.append("publishing")
            return {"digest_id": 1}

        result = await BootSequence(
            [("health", health), ("ingest", ingest), ("publishing", publishing)]
        ).run()

        assert calls == ["health", "ingest", "publishing"]
        assert list(result.steps) == ["health", "ingest", "publishing"]
        assert result.steps["health"].ok is True
        assert result.steps["ingest"].ok is False
        assert result.steps["ingest"].error_message == "scraper down"
        assert result.steps["ingest"].value is None
        assert result.steps["publishing"].ok is True
        assert result.steps["publishing"].value == {"digest_id": 1}
        assert result.ok is False
        assert result.duration_ms >= 0

        step_errors = [e for e in events if e["event"] == "boot:step:error"]
        assert [e["step"] for e in step_errors] == ["ingest"]

    @pytest.mark.asyncio
    async def test_error_without_message(self):
        async def broken():
            raise ValueError()

        result = await BootSequence([("broken", broken)]).run()
        assert result.steps["broken"].error_message == "ValueError"


class TestBootStamp:
    def test_fresh_stamp_skips_run(self, tmp_path):
        stamp = BootStamp(str(tmp_path))
        assert stamp.should_run_on_start() is True

        stamp.write()
        assert stamp.should_run_on_start() is False

    def test_old_stamp_allows_run(self, tmp_path):
        stamp = BootStamp(str(tmp_path))
        stamp.write()
        old = time.time() - 120
        os.utime(stamp.path, (old, old))
        assert stamp.should_run_on_start() is True

    def test_no_directory(self):
        stamp = BootStamp(None)
        stamp.write()
        assert stamp.path is None
        assert stamp.should_run_on_start() is True
