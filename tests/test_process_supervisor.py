# tests/test_process_supervisor.py

from __future__ import annotations

import asyncio

import pytest

from agent_dispatch.agents.prompt_rules import SELECT_DOWN
from agent_dispatch.agents.supervisor import ProcessSupervisor
from agent_dispatch.core.errors import ProcessExitError, ProcessTimeoutError, SpawnError

from .fakes import FakeLauncher

# asyncio timers may fire up to one clock tick early
TOLERANCE = 0.015


async def _start(sup: ProcessSupervisor, launcher: FakeLauncher, description: str = "fix it"):
    run = asyncio.create_task(sup.execute_task(description, task_id="t1"))
    proc = await launcher.next_process()
    await asyncio.sleep(0)
    return run, proc


@pytest.mark.asyncio
async def test_direct_mode_sends_description_and_returns_output(settings, launcher, sink) -> None:
    sup = ProcessSupervisor("agent-1", settings, launcher=launcher, events=sink)
    assert sup.wrapped is False

    run, proc = await _start(sup, launcher, "add input validation")

    assert launcher.calls[0][0] == ["claude", "ask"]
    assert launcher.calls[0][1] == settings.repo_path
    assert proc.payloads == ["add input validation\n"]
    assert sup.is_active

    proc.emit("working...\n")
    proc.emit("done\n")
    proc.exit(0)

    assert await run == "working...\ndone\n"
    assert not sup.is_active
    assert any("Agent output: done" in m for m in sink.progress_messages())


@pytest.mark.asyncio
async def test_wrapped_mode_waits_for_bootstrap_phrase_and_sends_once(
    settings, launcher, sink, tmp_path
) -> None:
    script = tmp_path / "ask_agent.js"
    script.write_text("// wrapper\n", "utf-8")
    settings.wrapper_script = script

    sup = ProcessSupervisor("agent-1", settings, launcher=launcher, events=sink)
    assert sup.wrapped is True

    run, proc = await _start(sup, launcher, "write docs")
    assert launcher.calls[0][0] == ["node", str(script.resolve())]
    assert proc.payloads == []

    # phrase split across two chunks still triggers once both have arrived
    proc.emit("Enter your programming ")
    await asyncio.sleep(0.01)
    assert proc.payloads == []

    proc.emit("task or question: ")
    await asyncio.sleep(0.01)
    assert proc.payloads == ["write docs\n"]

    proc.emit("Enter your programming task or question: ")
    await asyncio.sleep(0.01)
    assert proc.payloads == ["write docs\n"]

    proc.exit(0)
    await run


@pytest.mark.asyncio
async def test_missing_wrapper_script_falls_back_to_direct_mode(
    settings, launcher, sink, tmp_path
) -> None:
    settings.wrapper_script = tmp_path / "missing.js"
    sup = ProcessSupervisor("agent-1", settings, launcher=launcher, events=sink)

    assert sup.wrapped is False
    assert sup.build_command() == ["claude", "ask"]
    assert any("Wrapper script not found" in m for m in sink.progress_messages("warn"))


@pytest.mark.asyncio
async def test_permission_prompt_fires_three_step_response(settings, launcher, sink) -> None:
    sup = ProcessSupervisor("agent-1", settings, launcher=launcher, events=sink)
    run, proc = await _start(sup, launcher)
    loop = asyncio.get_running_loop()

    fired_at = loop.time()
    proc.emit("Do you want to create [Y/n]")
    await asyncio.sleep(0.2)

    responses = proc.writes[1:]
    assert [text for _, text in responses] == ["\n", "y\n", SELECT_DOWN + "\n"]

    enter_at, y_at, down_at = (ts for ts, _ in responses)
    step = settings.confirm_step_delay
    assert enter_at - fired_at < step
    assert y_at - enter_at >= step - TOLERANCE
    assert down_at - enter_at >= 2 * step - TOLERANCE

    proc.exit(0)
    await run


@pytest.mark.asyncio
async def test_generic_yes_no_prompt_is_case_insensitive(settings, launcher, sink) -> None:
    sup = ProcessSupervisor("agent-1", settings, launcher=launcher, events=sink)
    run, proc = await _start(sup, launcher)

    proc.emit("Overwrite existing file? YES/NO ")
    await asyncio.sleep(0.01)

    assert proc.payloads[1:] == ["\n"]
    assert any("Auto-confirming agent prompt (yes-no)" in m for m in sink.progress_messages())

    proc.exit(0)
    await run


@pytest.mark.asyncio
async def test_plain_output_sends_nothing(settings, launcher, sink) -> None:
    sup = ProcessSupervisor("agent-1", settings, launcher=launcher, events=sink)
    run, proc = await _start(sup, launcher)

    proc.emit("Reading src/app.py\nEditing 2 files\n")
    await asyncio.sleep(0.15)
    assert proc.payloads == ["fix it\n"]

    proc.exit(0)
    await run


@pytest.mark.asyncio
async def test_rescan_catches_prompt_split_across_chunks(settings, launcher, sink) -> None:
    settings.confirm_rescan_interval = 0.05
    sup = ProcessSupervisor("agent-1", settings, launcher=launcher, events=sink)
    run, proc = await _start(sup, launcher)

    proc.emit("Claude needs your")
    proc.emit(" permission to edit app.py")
    await asyncio.sleep(0.01)
    assert proc.payloads == ["fix it\n"]

    await asyncio.sleep(0.2)
    assert "\n" in proc.payloads[1:]
    assert "y\n" in proc.payloads[1:]
    assert any("Detected pending confirmation dialog" in m for m in sink.progress_messages())

    proc.exit(0)
    await run


@pytest.mark.asyncio
async def test_rescan_does_not_repeat_generic_phrase_in_prose(settings, launcher, sink) -> None:
    settings.confirm_rescan_interval = 0.05
    sup = ProcessSupervisor("agent-1", settings, launcher=launcher, events=sink)
    run, proc = await _start(sup, launcher)

    proc.emit("I will confirm the tests pass before committing.\n")
    proc.emit("Running tests\n")
    await asyncio.sleep(0.5)

    assert proc.payloads[1:].count("y\n") == 1
    assert proc.payloads[1:].count("\n") == 1
    assert not any("Detected pending confirmation dialog" in m for m in sink.progress_messages())

    proc.exit(0)
    await run


@pytest.mark.asyncio
async def test_pending_responses_are_dropped_when_process_exits(settings, launcher, sink) -> None:
    sup = ProcessSupervisor("agent-1", settings, launcher=launcher, events=sink)
    run, proc = await _start(sup, launcher)

    proc.emit("continue? [Y/n]")
    proc.exit(0)
    await run
    await asyncio.sleep(0.15)

    assert proc.payloads == ["fix it\n", "\n"]


@pytest.mark.asyncio
async def test_rejected_write_is_retried_exactly_once(settings, launcher, sink) -> None:
    sup = ProcessSupervisor("agent-1", settings, launcher=launcher, events=sink)
    run, proc = await _start(sup, launcher)

    proc.reject_writes = 1
    assert sup.send_input("use tabs") is True
    assert proc.rejected == ["use tabs\n"]
    assert proc.payloads == ["fix it\n"]

    await asyncio.sleep(0.1)
    assert proc.payloads == ["fix it\n", "use tabs\n"]
    assert any("will retry" in m for m in sink.progress_messages("warn"))

    proc.exit(0)
    await run


@pytest.mark.asyncio
async def test_write_rejected_twice_is_not_retried_again(settings, launcher, sink) -> None:
    sup = ProcessSupervisor("agent-1", settings, launcher=launcher, events=sink)
    run, proc = await _start(sup, launcher)

    proc.reject_writes = 5
    sup.send_input("hello")
    await asyncio.sleep(0.15)

    assert proc.rejected == ["hello\n", "hello\n"]
    assert "hello\n" not in proc.payloads

    proc.exit(0)
    await run


@pytest.mark.asyncio
async def test_send_input_without_session_returns_false(settings, launcher, sink) -> None:
    sup = ProcessSupervisor("agent-1", settings, launcher=launcher, events=sink)

    assert sup.send_input("hello") is False
    assert launcher.processes == []
    assert "No active agent process to send input to" in sink.progress_messages("error")


@pytest.mark.asyncio
async def test_send_input_refuses_closed_stdin_and_exited_process(settings, launcher, sink) -> None:
    sup = ProcessSupervisor("agent-1", settings, launcher=launcher, events=sink)
    run, proc = await _start(sup, launcher)

    proc.stdin_open = False
    assert sup.send_input("hello") is False
    assert proc.payloads == ["fix it\n"]

    proc.exit(0)
    await run
    assert sup.send_input("hello") is False
    assert proc.payloads == ["fix it\n"]


@pytest.mark.asyncio
async def test_nonzero_exit_raises_with_stderr(settings, launcher, sink) -> None:
    sup = ProcessSupervisor("agent-1", settings, launcher=launcher, events=sink)
    run, proc = await _start(sup, launcher)

    proc.emit_error("boom")
    proc.exit(1)

    with pytest.raises(ProcessExitError) as excinfo:
        await run
    assert excinfo.value.exit_code == 1
    assert excinfo.value.stderr == "boom"
    assert "code 1" in str(excinfo.value)
    assert "boom" in str(excinfo.value)
    assert not sup.is_active


@pytest.mark.asyncio
async def test_spawn_failure_raises_spawn_error(settings, sink) -> None:
    launcher = FakeLauncher(fail_with="claude: not found")
    sup = ProcessSupervisor("agent-1", settings, launcher=launcher, events=sink)

    with pytest.raises(SpawnError, match="not found"):
        await sup.execute_task("fix it")
    assert not sup.is_active
    assert "claude: not found" in sink.progress_messages("error")


@pytest.mark.asyncio
async def test_timeout_kills_process(settings, launcher, sink) -> None:
    settings.task_timeout = 0.05
    sup = ProcessSupervisor("agent-1", settings, launcher=launcher, events=sink)
    run, proc = await _start(sup, launcher)

    with pytest.raises(ProcessTimeoutError):
        await run
    assert proc.killed
    assert not sup.is_active


@pytest.mark.asyncio
async def test_terminate_kills_live_process(settings, launcher, sink) -> None:
    sup = ProcessSupervisor("agent-1", settings, launcher=launcher, events=sink)
    assert sup.terminate() is False

    run, proc = await _start(sup, launcher)
    assert sup.terminate() is True

    with pytest.raises(ProcessExitError):
        await run
    assert proc.killed


@pytest.mark.asyncio
async def test_second_session_on_busy_supervisor_is_refused(settings, launcher, sink) -> None:
    sup = ProcessSupervisor("agent-1", settings, launcher=launcher, events=sink)
    run, proc = await _start(sup, launcher)

    with pytest.raises(RuntimeError, match="already has an active process"):
        await sup.execute_task("another")

    proc.exit(0)
    await run
