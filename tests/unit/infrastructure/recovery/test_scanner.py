from genpool.infrastructure.recovery.scanner import (
    find_balanced_span, iter_segments, map_outside_strings, scan, single_to_double_quotes,
)


def test_scan_tracks_nesting_and_strings():
    state = scan('{"a": ["x{", {"b": "]"')

    assert state.in_string is False
    assert state.stack == ["{", "[", "{"]
    assert state.closers() == "}]}"
    assert state.missing_braces == 2
    assert state.missing_brackets == 1


def test_scan_detects_unterminated_string_with_escapes():
    assert scan('{"a": "say \\"hi').in_string is True
    assert scan('{"a": "done\\\\"').in_string is False


def test_find_balanced_span_skips_prose_and_string_content():
    text = 'prefix {"a": "}", "b": [1]} suffix {"c": 2}'
    start, end = find_balanced_span(text)

    assert text[start:end] == '{"a": "}", "b": [1]}'


def test_find_balanced_span_from_offset():
    text = '[note] then {"a": 1}'
    start, end = find_balanced_span(text, 1)

    assert text[start:end] == '{"a": 1}'


def test_find_balanced_span_none_when_unclosed():
    assert find_balanced_span('{"a": [1, 2}') is None
    assert find_balanced_span("no openers") is None


def test_iter_segments_splits_literals():
    segments = list(iter_segments('{"k": "v", x: "open'))

    assert segments == [
        (False, "{"),
        (True, '"k"'),
        (False, ": "),
        (True, '"v"'),
        (False, ", x: "),
        (True, '"open'),
    ]


def test_map_outside_strings_leaves_literals_alone():
    assert map_outside_strings('{"a,b": 1,}', lambda chunk: chunk.replace(",", "")) == '{"a,b": 1}'


def test_single_to_double_quotes():
    assert single_to_double_quotes("{'a': 'b'}") == '{"a": "b"}'
    assert single_to_double_quotes("{'say': 'he said \"hi\"'}") == '{"say": "he said \\"hi\\""}'
    assert single_to_double_quotes("{'a': 'it\\'s'}") == '{"a": "it\'s"}'
    assert single_to_double_quotes('{"keep": "it\'s"}') == '{"keep": "it\'s"}'
