import pytest

import histrank
from histrank import main

HISTORY = "\n".join(["git status", "ls", "git status", "cd /tmp", "git status", "ls", "make", ""])


def test_plain_output_lists_both_ends(bash_home, capsys):
    (bash_home / ".bash_history").write_text(HISTORY)

    assert main(["--plain"]) == 0

    out = capsys.readouterr().out
    assert out == (
        "Here are your 2 most used commands:\n\n"
        "used 3 times\tgit status\n"
        "used 2 times\tls\n"
        "\n\n"
        "Here are your 2 least used commands:\n\n"
        "used 1 times\tmake\n"
        "used 1 times\tcd /tmp\n"
    )


def test_rich_output(bash_home, out_console):
    (bash_home / ".bash_history").write_text(HISTORY)

    assert main(["-c", "1"]) == 0

    out = out_console.getvalue()
    assert "Here are your 1 most used commands:" in out
    assert "Here are your 1 least used commands:" in out
    assert "git status" in out
    assert "make" in out
    assert "cd /tmp" not in out
    assert "4 distinct commands" in out


def test_rich_output_when_nothing_matches(bash_home, out_console):
    (bash_home / ".bash_history").write_text(HISTORY)

    assert main(["--exact", "nothing like this"]) == 0
    assert "No commands matched." in out_console.getvalue()


def test_ignore_accepts_comma_lists_and_repeats(bash_home, capsys):
    (bash_home / ".bash_history").write_text(HISTORY)

    assert main(["--plain", "-i", "git,ls", "-i", "make"]) == 0

    out = capsys.readouterr().out
    assert "git status" not in out
    assert "make" not in out
    # a single distinct command cannot fill both ends
    assert "Here are your 0 most used commands:" in out


def test_exact_search(bash_home, capsys):
    (bash_home / ".bash_history").write_text(HISTORY + "git stash\ngit stash\ngit log\n")

    assert main(["--plain", "--exact", "git", "st"]) == 0

    out = capsys.readouterr().out
    assert "used 3 times\tgit status" in out
    assert "used 2 times\tgit stash" in out
    assert "git log" not in out


@pytest.mark.parametrize(
    "flags, expected",
    [
        ([], histrank.FUZZY),
        (["--fuzzy"], histrank.FUZZY),
        (["--exact"], histrank.EXACT),
        (["--exact", "--fuzzy"], histrank.FUZZY),
    ],
)
def test_search_method_selection(bash_home, monkeypatch, capsys, flags, expected):
    seen = []
    original = histrank.filter_searched

    def spy(lines, search, min_score, method):
        seen.append((search, min_score, method))
        return original(lines, search, min_score, method)

    monkeypatch.setattr(histrank, "filter_searched", spy)

    assert main(["--plain", "-s", "55", *flags, "git"]) == 0
    assert seen == [(["git"], 55, expected)]


def test_zsh_history_from_explicit_file(tmp_path, monkeypatch, capsys):
    monkeypatch.delenv("SHELL", raising=False)
    hist = tmp_path / "zhist"
    hist.write_text(
        ": 1700000000:0;git status\n"
        ": 1700000001:0;git status\n"
        ": 1700000002:0;ls\n"
        ": 1700000003:0;make\n"
    )

    assert main(["--plain", "--shell", "zsh", "--file", str(hist)]) == 0

    out = capsys.readouterr().out
    assert "used 2 times\tgit status" in out
    assert ": 17000" not in out


def test_histfile_env_is_used(bash_home, monkeypatch, capsys):
    other = bash_home / "elsewhere"
    other.write_text("htop\nhtop\nvim\n")
    monkeypatch.setenv("HISTFILE", str(other))

    assert main(["--plain"]) == 0
    assert "used 2 times\thtop" in capsys.readouterr().out


def test_unsupported_shell_is_fatal(bash_home, monkeypatch, err_console, capsys):
    monkeypatch.setenv("SHELL", "/usr/bin/fish")

    assert main([]) == 1

    assert "Unsupported shell '/usr/bin/fish'" in err_console.getvalue()
    assert capsys.readouterr().out == ""


def test_missing_history_file_is_fatal(bash_home, err_console):
    (bash_home / ".bash_history").unlink()

    assert main([]) == 1

    err = err_console.getvalue()
    assert "Could not read history file" in err
    assert "file not found" in err


def test_stats_go_to_stderr(bash_home, err_console, capsys):
    (bash_home / ".bash_history").write_text("#1700000000\nls\n\nls\n")

    assert main(["--plain", "--stats"]) == 0

    err = err_console.getvalue()
    for stage in ("read", "cleanup", "ignore", "search (fuzzy)", "distinct"):
        assert stage in err
    assert "Here are your" in capsys.readouterr().out


@pytest.mark.parametrize("count", ["-1", "256", "many"])
def test_count_out_of_range_is_rejected(bash_home, count):
    with pytest.raises(SystemExit) as exc:
        main(["--count", count])
    assert exc.value.code == 2


def test_version(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--version"])
    assert exc.value.code == 0
    assert histrank.__version__ in capsys.readouterr().out


def test_bash_timestamps_with_ignore_and_fuzzy_search(bash_home, capsys):
    (bash_home / ".bash_history").write_text(
        "#1700000000\ngit status\n"
        "#1700000001\ngit stash\n"
        "#1700000002\nls -la\n"
        "#1700000003\ngit status\n"
        "#1700000004\ngrep foo\n"
        "#1700000005\nls -gst\n"
    )

    assert main(["--plain", "-i", "ls", "gst"]) == 0

    out = capsys.readouterr().out
    assert "used 2 times\tgit status" in out
    assert "used 1 times\tgit stash" in out
    assert "#17" not in out
    assert "ls" not in out
    assert "grep" not in out


def test_file_without_shell_is_guessed_from_its_name(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("SHELL", "/usr/bin/fish")
    hist = tmp_path / ".zsh_history"
    hist.write_text(": 1700000000:0;make\n: 1700000001:0;make\n: 1700000002:0;ls\n")

    assert main(["--plain", "--file", str(hist)]) == 0

    out = capsys.readouterr().out
    assert "used 2 times\tmake" in out
    assert ": 17000" not in out


def test_broken_pipe_exits_cleanly(bash_home, monkeypatch, tmp_path):
    (bash_home / ".bash_history").write_text(HISTORY)

    def closed_pipe(ranking, plain=False):
        raise BrokenPipeError

    redirected = []
    monkeypatch.setattr(histrank, "print_command_table", closed_pipe)
    monkeypatch.setattr(histrank.os, "dup2", lambda fd, fd2: redirected.append(fd2))
    with (tmp_path / "stdout").open("w") as stdout:
        monkeypatch.setattr(histrank.sys, "stdout", stdout)
        assert main(["--plain"]) == 0
        assert redirected == [stdout.fileno()]
