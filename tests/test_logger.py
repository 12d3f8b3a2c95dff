import logging
import re

from leptos_build.logger import (
    ERR_RED,
    INFO_GREEN,
    LeptosFormatter,
    LogFlag,
    LogTarget,
    TargetFilter,
    dependency,
    level_color,
    paint,
    setup,
    split_word,
    TRACE,
)

_ANSI = re.compile(r"\x1b\[[0-9;]*m")


def _record(name, level, msg):
    return logging.LogRecord(name, level, __file__, 1, msg, None, None)


def _plain(text):
    return _ANSI.sub("", text)


def test_paint_keeps_text_and_resets():
    out = paint(ERR_RED, "boom")
    assert _plain(out) == "boom"
    assert out.startswith("\x1b[38;5;196m")
    assert out.endswith("\x1b[0m")


def test_log_flag_is_set():
    flag = LogFlag.from_logs([LogTarget.WASM])
    assert flag.is_set(LogTarget.WASM)
    assert not flag.is_set(LogTarget.SERVER)
    both = LogFlag.from_logs([LogTarget.WASM, LogTarget.SERVER])
    assert both.is_set(LogTarget.WASM) and both.is_set(LogTarget.SERVER)


def test_log_flag_matches_server_targets():
    flag = LogFlag.from_logs([LogTarget.SERVER])
    assert flag.matches("hyper.proto")
    assert flag.matches("axum.routing")
    assert not flag.matches("wasm_bindgen")
    assert not flag.matches("walrus.module")


def test_log_flag_matches_wasm_targets():
    flag = LogFlag.from_logs([LogTarget.WASM])
    assert flag.matches("wasm_bindgen")
    assert flag.matches("walrus.module")
    assert not flag.matches("hyper")


def test_empty_flag_matches_nothing():
    flag = LogFlag.from_logs([])
    assert not any(flag.matches(t) for t in ["hyper", "axum", "wasm", "walrus"])


def test_split_word():
    assert split_word("Serve running bin") == ("Serve", "running bin")
    assert split_word("single") == ("", "single")


def test_dependency():
    assert dependency("hyper.proto.h1") == "hyper"
    assert dependency("leptos_build.fs") is None
    assert dependency("plain") is None


def test_level_colors():
    assert level_color(logging.ERROR) == ERR_RED
    assert level_color(logging.INFO) == INFO_GREEN
    levels = [logging.ERROR, logging.WARNING, logging.INFO, logging.DEBUG, TRACE]
    assert len({level_color(level) for level in levels}) == 5


def test_format_own_record_pads_first_word():
    out = LeptosFormatter().format(_record("leptos_build.serve", logging.INFO, "Serve running bin"))
    plain = _plain(out)
    assert plain == " " * 7 + "Serve running bin"
    assert out.startswith(f"\x1b[38;5;{INFO_GREEN}m")


def test_format_dependency_record():
    out = LeptosFormatter().format(_record("hyper.proto", logging.WARNING, "hello world"))
    plain = _plain(out)
    assert plain.endswith(" hello world")
    assert plain[:12].strip() == "[hyper]"
    assert len(plain) == 12 + len(" hello world")


def test_filter_passes_errors_and_own_records():
    filt = TargetFilter(LogFlag.from_logs([]))
    assert filt.filter(_record("hyper.x", logging.ERROR, "bad"))
    assert filt.filter(_record("leptos_build.site", logging.DEBUG, "ok"))
    assert not filt.filter(_record("hyper.x", logging.INFO, "noise"))


def test_filter_passes_selected_dependency():
    filt = TargetFilter(LogFlag.from_logs([LogTarget.SERVER]))
    assert filt.filter(_record("hyper.x", logging.INFO, "request"))
    assert not filt.filter(_record("walrus.x", logging.INFO, "module"))


def test_setup_runs_once():
    first = setup(1, [LogTarget.SERVER])
    second = setup(0, [])
    assert second == first
    assert first.is_set(LogTarget.SERVER)