import subprocess
import sys

import pytest

from zxytiles.tiling.runner import TileCommandError, TileRunner


def _python(code: str) -> list:
    return [sys.executable, "-c", code]


def test_run_success() -> None:
    TileRunner(poll_interval=0.05).run(_python("print('ok')"), description="echo")


def test_run_failure_surfaces_stderr_verbatim() -> None:
    runner = TileRunner(poll_interval=0.05)
    code = "import sys; sys.stderr.write('convert: unable to open image'); sys.exit(3)"

    with pytest.raises(TileCommandError) as excinfo:
        runner.run(_python(code), description="fail")

    assert excinfo.value.returncode == 3
    assert excinfo.value.diagnostic == "convert: unable to open image"
    assert "--- stderr ---" in str(excinfo.value)


def test_missing_executable_is_command_error() -> None:
    with pytest.raises(TileCommandError):
        TileRunner().run(["zxytiles-no-such-binary-1234"], description="missing")


def test_dry_run_skips_execution() -> None:
    TileRunner(dry_run=True).run(["zxytiles-no-such-binary-1234"], description="dry")


def test_heartbeat_ticks_while_waiting() -> None:
    ticks = []
    runner = TileRunner(poll_interval=0.05, heartbeat=lambda: ticks.append(1))

    runner.run(_python("import time; time.sleep(0.5)"), description="sleep")

    assert ticks


def test_timeout_terminates_process() -> None:
    runner = TileRunner(poll_interval=0.05, timeout_seconds=0.3)

    with pytest.raises(TileCommandError) as excinfo:
        runner.run(_python("import time; time.sleep(30)"), description="hang")

    assert "timed out" in str(excinfo.value)


def test_interrupt_terminates_child(monkeypatch: pytest.MonkeyPatch) -> None:
    spawned = []
    real_popen = subprocess.Popen

    def recording_popen(*args, **kwargs):  # type: ignore[no-untyped-def]
        proc = real_popen(*args, **kwargs)
        spawned.append(proc)
        return proc

    monkeypatch.setattr(subprocess, "Popen", recording_popen)

    def interrupt() -> None:
        raise KeyboardInterrupt

    runner = TileRunner(poll_interval=0.05, heartbeat=interrupt)
    with pytest.raises(KeyboardInterrupt):
        runner.run(_python("import time; time.sleep(30)"), description="interrupted")

    assert len(spawned) == 1
    assert spawned[0].poll() is not None


def test_poll_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        TileRunner(poll_interval=0)
