from types import SimpleNamespace

import pytest

from mssh.errors import ShellExit
from mssh.runner import build_interpreter, run_shell


@pytest.mark.asyncio
async def test_connect_and_put_through_dispatcher(network, dispatcher, executor):
    network.add_host("a", home="/home/a")
    network.add_host("b", home="/home/b")

    assert await dispatcher.dispatch("connect", ["root", "pw", "a"])
    assert await dispatcher.dispatch("connect", ["root", "pw", "b", "22", "3"])
    assert await dispatcher.dispatch("done", [])
    assert await dispatcher.dispatch("put", ["f"])

    assert sorted(network.uploads) == [("a", "f", "/home/a/f"), ("b", "f", "/home/b/f")]
    assert executor.tasks.outstanding == 0


@pytest.mark.asyncio
async def test_connect_rejects_bad_numbers(network, dispatcher, executor, log_messages):
    network.add_host("a")

    assert not await dispatcher.dispatch("connect", ["root", "pw", "a", "ssh"])
    assert not await dispatcher.dispatch("connect", ["root", "pw", "a", "22", "soon"])
    await executor.done()

    assert network.dials == []
    assert "[connect] convert port to int error: 'ssh'" in log_messages
    assert "[connect] convert timeout to int error: 'soon'" in log_messages


@pytest.mark.asyncio
async def test_connect_requires_host(network, dispatcher, log_messages):
    assert not await dispatcher.dispatch("connect", ["root", "pw"])
    assert "[connect] missing <host>" in log_messages


@pytest.mark.asyncio
async def test_connect_too_many_arguments(network, dispatcher, log_messages):
    network.add_host("a")
    assert not await dispatcher.dispatch("connect", ["root", "pw", "a", "22", "5", "extra"])
    assert network.dials == []


@pytest.mark.asyncio
async def test_release_and_check(network, dispatcher, executor, log_messages):
    network.add_host("a")
    await dispatcher.dispatch("connect", ["root", "pw", "a"])
    await dispatcher.dispatch("done", [])

    assert await dispatcher.dispatch("check", [])
    assert await dispatcher.dispatch("release", ["a"])
    assert await dispatcher.dispatch("release", ["a"])
    assert "[a] connecting" in log_messages
    assert "[a] has not connected yet" in log_messages
    assert len(executor.pool) == 0


@pytest.mark.asyncio
async def test_help_output(dispatcher, capsys):
    await dispatcher.dispatch("help", [])
    assert capsys.readouterr().out.startswith("All commands:\n")

    await dispatcher.dispatch("help", ["get"])
    assert "usage: get <remotePath>" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_exit_raises_shell_exit(dispatcher):
    with pytest.raises(ShellExit):
        await dispatcher.dispatch("exit", [])


@pytest.mark.asyncio
async def test_log_command_adds_file_sink(dispatcher, tmp_path, monkeypatch):
    added = []
    monkeypatch.setattr("mssh.commands.add_log_file", added.append)

    assert await dispatcher.dispatch("log", [str(tmp_path / "mssh.log")])
    assert not await dispatcher.dispatch("log", [])
    assert added == [tmp_path / "mssh.log"]


@pytest.mark.asyncio
async def test_unknown_line_runs_remotely(network, config, executor, capsys):
    network.add_host("a")
    interpreter = build_interpreter(config, executor)

    await interpreter.interpret(["connect root pw a", "done", "uname -r"])

    assert "a: uname -r" in capsys.readouterr().out
    assert network.connections[0].commands == ["pwd", "uname -r"]


@pytest.mark.asyncio
async def test_script_download_scenario(network, config, tmp_path):
    network.add_host("h1")
    config.rc_file.write_text("# rc\nconnect root pw h1\n")
    script = tmp_path / "fetch.mssh"
    script.write_text("done\nget /etc/hostname\nexit\nget /never\n")

    assert await run_shell(config, [script]) == 0

    assert (config.download_root / "h1" / "hostname").exists()
    assert [d[1] for d in network.downloads] == ["/etc/hostname"]
    assert network.connections[0].closed


@pytest.mark.asyncio
async def test_run_shell_fails_when_prompt_cannot_start(config, monkeypatch, log_messages):
    def broken_session(*args, **kwargs):
        raise OSError("not a terminal")

    monkeypatch.setattr("mssh.runner.create_prompt_session", broken_session)
    monkeypatch.setattr("sys.stdin", SimpleNamespace(isatty=lambda: True))

    assert await run_shell(config, []) == 1
    assert "failed to set up the interactive prompt: not a terminal" in log_messages
