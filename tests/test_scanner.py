import pytest

from toolloop.core.scanner import contains_stop_token, scan_tool_calls
from toolloop.core.types import ToolCall


def test_single_call_with_empty_args() -> None:
    assert scan_tool_calls("Checking... <<tool:help {}>>") == [ToolCall(name="help", args={})]


def test_calls_are_returned_in_text_order() -> None:
    text = (
        'first <<tool:read_file {"path": "x}.txt"}>> then '
        '<<tool:search_code {"pattern": "{", "opts": {"n": 1}}>> done'
    )
    calls = scan_tool_calls(text)
    assert calls == [
        ToolCall(name="read_file", args={"path": "x}.txt"}),
        ToolCall(name="search_code", args={"pattern": "{", "opts": {"n": 1}}),
    ]


@pytest.mark.parametrize("count", [0, 1, 3, 7])
def test_every_well_formed_marker_is_found(count: int) -> None:
    text = " and ".join(f'<<tool:tool_{idx} {{"idx": {idx}}}>>' for idx in range(count))
    calls = scan_tool_calls(text)
    assert [call.name for call in calls] == [f"tool_{idx}" for idx in range(count)]
    assert [call.args for call in calls] == [{"idx": idx} for idx in range(count)]


def test_near_json_arguments_are_repaired() -> None:
    assert scan_tool_calls("<<tool:read_file {'path': 'a.txt',}>>") == [
        ToolCall(name="read_file", args={"path": "a.txt"})
    ]


def test_marker_without_object_is_skipped() -> None:
    calls = scan_tool_calls("<<tool:help now>> <<tool:list_files {}>>")
    assert calls == [ToolCall(name="list_files", args={})]


def test_unterminated_argument_yields_nothing() -> None:
    assert scan_tool_calls('x <<tool:read_file {"path": "a"') == []


def test_mismatched_braces_yield_nothing() -> None:
    assert scan_tool_calls('before <<tool:read_file {"path": {"a.txt"}>> after') == []


def test_missing_end_marker_discards_call() -> None:
    assert scan_tool_calls("<<tool:help {} and nothing else") == []


def test_undecodable_arguments_only_drop_that_call() -> None:
    calls = scan_tool_calls('<<tool:a {"x": @}>> <<tool:b {"y": 1}>>')
    assert calls == [ToolCall(name="b", args={"y": 1})]


def test_name_stops_at_non_word_character() -> None:
    assert scan_tool_calls("<<tool:foo-bar {}>>") == []


def test_plain_text_has_no_calls() -> None:
    assert scan_tool_calls("Nothing to run here {not: a call}") == []


def test_stop_token_is_case_insensitive() -> None:
    assert contains_stop_token("All good <<DONE>>")
    assert not contains_stop_token("done")


def _capture_warnings(monkeypatch) -> list[tuple[str, tuple[object, ...]]]:
    logs: list[tuple[str, tuple[object, ...]]] = []

    def _capture(message: str, *args: object) -> None:
        logs.append((message, args))

    monkeypatch.setattr("toolloop.core.scanner.logger.warning", _capture)
    return logs


def test_empty_name_is_skipped_and_logged(monkeypatch) -> None:
    logs = _capture_warnings(monkeypatch)

    calls = scan_tool_calls('<<tool: {"a": 1}>> <<tool:help {}>>')

    assert calls == [ToolCall(name="help", args={})]
    assert logs == [("scanner.call.skipped name=- error=missing_name", ())]


def test_missing_arguments_are_logged(monkeypatch) -> None:
    logs = _capture_warnings(monkeypatch)

    assert scan_tool_calls("<<tool:help now>>") == []
    assert logs == [("scanner.call.skipped name={} error=missing_arguments", ("help",))]
