import asyncio
import os
import sys

import pytest

from leptos_build.process import (
    CommandOutcome,
    ProcessOutput,
    wait_for_socket,
    wait_interruptible,
    wait_piped_interruptible,
)


async def _spawn(code):
    return await asyncio.create_subprocess_exec(sys.executable, "-c", code)


def test_has_output_needs_more_than_one_byte():
    output = ProcessOutput(returncode=0, stdout=b"\n", stderr=b"ok")
    assert output.has_stdout() is False
    assert output.has_stderr() is True


def test_output_text_decoding():
    output = ProcessOutput(returncode=1, stdout=b"abc", stderr=b"\xff")
    assert output.stdout_text() == "abc"
    assert output.stderr_text() == "\ufffd"
    assert output.success is False


@pytest.mark.asyncio
async def test_wait_interruptible_success():
    process = await _spawn("pass")
    result = await wait_interruptible("test", process, asyncio.Event().wait())
    assert result.outcome is CommandOutcome.SUCCESS
    assert result.output is None


@pytest.mark.asyncio
async def test_wait_interruptible_failure():
    process = await _spawn("import sys; sys.exit(3)")
    result = await wait_interruptible("test", process, asyncio.Event().wait())
    assert result.outcome is CommandOutcome.FAILURE
    assert process.returncode == 3


@pytest.mark.asyncio
async def test_wait_interruptible_interrupted_kills_process():
    process = await _spawn("import time; time.sleep(30)")
    result = await wait_interruptible("test", process, asyncio.sleep(0.05))
    assert result.outcome is CommandOutcome.INTERRUPTED
    assert process.returncode not in (None, 0)


@pytest.mark.asyncio
async def test_wait_piped_captures_stdout():
    result = await wait_piped_interruptible(
        "test", [sys.executable, "-c", "print('hello')"], asyncio.Event().wait()
    )
    assert result.outcome is CommandOutcome.SUCCESS
    assert result.output.stdout_text().strip() == "hello"
    assert result.output.has_stdout() is True
    assert result.output.has_stderr() is False


@pytest.mark.asyncio
async def test_wait_piped_failure_captures_stderr():
    code = "import sys; sys.stderr.write('boom'); sys.exit(2)"
    result = await wait_piped_interruptible(
        "test", [sys.executable, "-c", code], asyncio.Event().wait()
    )
    assert result.outcome is CommandOutcome.FAILURE
    assert result.output.returncode == 2
    assert result.output.stderr_text() == "boom"


@pytest.mark.asyncio
async def test_wait_piped_interrupted():
    result = await wait_piped_interruptible(
        "test", [sys.executable, "-c", "import time; time.sleep(30)"], asyncio.sleep(0.05)
    )
    assert result.outcome is CommandOutcome.INTERRUPTED
    assert result.output is None


@pytest.mark.asyncio
async def test_wait_piped_passes_env():
    env = {**os.environ, "LEPTOS_PROBE": "probe-value"}
    code = "import os; print(os.environ['LEPTOS_PROBE'])"
    result = await wait_piped_interruptible(
        "test", [sys.executable, "-c", code], asyncio.Event().wait(), env
    )
    assert result.output.stdout_text().strip() == "probe-value"


@pytest.mark.asyncio
async def test_wait_piped_missing_program_raises(tmp_path):
    with pytest.raises(OSError):
        await wait_piped_interruptible(
            "test", [str(tmp_path / "no-such-program")], asyncio.Event().wait()
        )


@pytest.mark.asyncio
async def test_wait_for_socket_open_port():
    async def handle(reader, writer):
        writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        assert await wait_for_socket("test", ("127.0.0.1", port)) is True
    finally:
        server.close()
        await server.wait_closed()